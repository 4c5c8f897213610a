"""Tests for the digest-audio-urls CLI."""

from unittest.mock import patch

import pytest
from botocore.exceptions import ClientError

from generate_digests import audio_urls_cli
from generate_digests.audio_urls import AudioFileUrl


def _file(key: str) -> AudioFileUrl:
    return AudioFileUrl(key=key, locator=f"s3://bucket/{key}", signed_url=f"https://signed/{key}")


@pytest.fixture
def service(monkeypatch):
    monkeypatch.delenv("DATABASE_URL", raising=False)
    with patch("generate_digests.audio_urls_cli.AudioUrlService") as service_cls:
        service_cls.return_value.url_expiration_minutes = 60
        yield service_cls.return_value


class TestAudioUrlsCliArgs:
    def test_digest_id_requires_user(self) -> None:
        with pytest.raises(SystemExit):
            audio_urls_cli.parse_args(["--digest-id", "7"])

    def test_all_requires_user(self) -> None:
        with pytest.raises(SystemExit):
            audio_urls_cli.parse_args(["--all"])

    def test_check_requires_digest(self) -> None:
        with pytest.raises(SystemExit):
            audio_urls_cli.parse_args(["--locator", "s3://bucket/a.wav", "--check"])

    def test_targets_are_exclusive(self) -> None:
        with pytest.raises(SystemExit):
            audio_urls_cli.parse_args(["--all", "--delete", "s3://bucket/a.wav", "--user-id", "1"])

    def test_several_locators(self) -> None:
        args = audio_urls_cli.parse_args(["--locator", "s3://bucket/a.wav", "s3://bucket/b.wav"])
        assert args.locator == ["s3://bucket/a.wav", "s3://bucket/b.wav"]


class TestAudioUrlsCliMain:
    def test_digest_parts_printed(self, service, capsys) -> None:
        service.list_digest_audio_urls.return_value = [_file("audio/1/tts-7_0.wav")]

        audio_urls_cli.main(["--config", "local", "--user-id", "1", "--digest-id", "7"])

        service.list_digest_audio_urls.assert_called_once_with(1, 7)
        assert capsys.readouterr().out == "audio/1/tts-7_0.wav\thttps://signed/audio/1/tts-7_0.wav\n"

    def test_all_audio_of_user(self, service, capsys) -> None:
        service.list_user_audio_urls.return_value = [_file("audio/1/tts-9_0.wav"), _file("audio/1/tts-3_0.wav")]

        audio_urls_cli.main(["--config", "local", "--user-id", "1", "--all"])

        service.list_user_audio_urls.assert_called_once_with(1)
        assert len(capsys.readouterr().out.splitlines()) == 2

    def test_check_reports_existing_audio(self, service, capsys) -> None:
        service.has_audio_files.return_value = True

        audio_urls_cli.main(["--config", "local", "--user-id", "1", "--digest-id", "7", "--check"])

        service.has_audio_files.assert_called_once_with(1, 7)
        assert capsys.readouterr().out == "yes\n"

    def test_check_without_audio_exits_non_zero(self, service, capsys) -> None:
        service.has_audio_files.return_value = False

        with pytest.raises(SystemExit) as exc_info:
            audio_urls_cli.main(["--config", "local", "--user-id", "1", "--digest-id", "7", "--check"])

        assert exc_info.value.code == 1
        assert capsys.readouterr().out == "no\n"

    def test_no_existing_locator_exits_non_zero(self, service) -> None:
        service.get_signed_urls.return_value = []

        with pytest.raises(SystemExit) as exc_info:
            audio_urls_cli.main(["--config", "local", "--locator", "s3://bucket/gone.wav"])

        assert exc_info.value.code == 1

    def test_delete(self, service, capsys) -> None:
        service.delete_audio_file.return_value = True

        audio_urls_cli.main(["--config", "local", "--delete", "s3://bucket/a.wav"])

        service.delete_audio_file.assert_called_once_with("s3://bucket/a.wav")
        assert "Deleted s3://bucket/a.wav" in capsys.readouterr().out

    def test_s3_error_exits_non_zero(self, service) -> None:
        service.list_user_audio_urls.side_effect = ClientError(
            {"Error": {"Code": "AccessDenied", "Message": "denied"}}, "ListObjectsV2"
        )

        with pytest.raises(SystemExit) as exc_info:
            audio_urls_cli.main(["--config", "local", "--user-id", "1", "--all"])

        assert exc_info.value.code == 1

    def test_missing_config_exits_non_zero(self, service, tmp_path) -> None:
        with pytest.raises(SystemExit) as exc_info:
            audio_urls_cli.main(["--config", str(tmp_path / "missing.yaml"), "--all", "--user-id", "1"])

        assert exc_info.value.code == 1
        service.list_user_audio_urls.assert_not_called()
