import re

PROMPT_ECHO = re.compile(
    r"<\|BEGIN_SYSTEM\|>.*?<\|END_SYSTEM\|>.*?<\|BEGIN_USER\|>.*?<\|END_USER\|>",
    re.DOTALL,
)


def is_prompt_echo(text: str) -> bool:
    """True when text repeats the system+user prompt delimiters."""
    return PROMPT_ECHO.search(text) is not None


def clean_reply(text: str) -> str:
    """Strip echoed prompt and stray lead-in from an accumulated reply."""
    # Drop everything up to and including the last end-of-user marker
    text = re.sub(r"^.*<\|END_USER\|>", "", text, flags=re.DOTALL)
    # A newline followed by a single stray letter sometimes leads the reply
    text = re.sub(r"^\n[a-zA-Z]?", "", text)
    return text.strip()
