"""Prompt templates for article summaries, daily digests and talk scripts."""

SUMMARY_MAX_CHARS = 500

SYSTEM_INSTRUCTIONS = (
    "You are a careful news editor for a read-later app. "
    "Follow the formatting rules in each request exactly and return only the requested text."
)


def _format_urls(urls: list[str]) -> str:
    return "\n".join(f"- {url}" for url in urls)


def build_article_summary_prompt(url: str) -> str:
    return (
        "Summarize the article at the following URL:\n"
        f"{url}\n"
        "Rules:\n"
        f"- Keep the summary under {SUMMARY_MAX_CHARS} characters.\n"
        "- Respond with the summary only."
    )


def build_daily_digest_prompt(urls: list[str]) -> str:
    """Prompt for one combined digest covering every article in the batch."""
    return (
        "Summarize each of the following articles, then combine them into a single "
        "daily digest for the reader.\n"
        "Articles:\n"
        f"{_format_urls(urls)}\n"
        "Rules:\n"
        "- Cover every article.\n"
        "- Open with a one-sentence overview of the day's reading.\n"
        "- Respond with the digest only."
    )


def build_talk_script_prompt(urls: list[str]) -> str:
    """Prompt for a two-speaker talk script covering every article in the batch."""
    return (
        "Summarize each of the following articles, then write a talk script in which "
        "two people discuss those summaries.\n"
        "Articles:\n"
        f"{_format_urls(urls)}\n"
        "Rules:\n"
        "- The conversation is between Speaker1 and Speaker2.\n"
        '- Prefix every line with "Speaker1: " or "Speaker2: ".\n'
        "- Cover every article.\n"
        "- Respond with the script only."
    )
