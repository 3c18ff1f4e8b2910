from __future__ import annotations

import logging
import re
from datetime import date, timedelta

import anthropic

from touchbase.config import anthropic_api_key, anthropic_model

logger = logging.getLogger(__name__)

SCHEDULE_PROMPT = """\
Today is {today} ({weekday}). A user wants to be reminded to follow up with a contact.

Work out the calendar date they mean from this request:
{text}

Rules:
- "next week" means today + 7 days, "next month" means today + 30 days
- A weekday name means the next such day after today
- Only future dates (today or later) are valid
- Return ONLY the date as YYYY-MM-DD, no extra text
"""

_WEEKDAYS = ["monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"]

_UNIT_DAYS = {"day": 1, "week": 7, "month": 30, "year": 365}

_NUMBER_WORDS = {
    "a": 1, "an": 1, "one": 1, "two": 2, "three": 3, "four": 4, "five": 5,
    "six": 6, "seven": 7, "eight": 8, "nine": 9, "ten": 10, "couple": 2, "few": 3,
}

_RELATIVE_PATTERN = re.compile(
    r"(?i)\bin\s+(?:a\s+)?(\d+|a|an|one|two|three|four|five|six|seven|eight|nine|ten|couple|few)"
    r"(?:\s+of)?\s+(day|week|month|year)s?\b"
)
_ISO_PATTERN = re.compile(r"\b(\d{4}-\d{2}-\d{2})\b")


def _rule_based_schedule(text: str, today: date) -> date | None:
    """Fallback parsing of common timing phrases."""
    m = _ISO_PATTERN.search(text)
    if m:
        try:
            return date.fromisoformat(m.group(1))
        except ValueError:
            pass

    m = _RELATIVE_PATTERN.search(text)
    if m:
        amount = m.group(1).lower()
        count = int(amount) if amount.isdigit() else _NUMBER_WORDS[amount]
        return today + timedelta(days=count * _UNIT_DAYS[m.group(2).lower()])

    lower = text.lower()
    if re.search(r"\btomorrow\b", lower):
        return today + timedelta(days=1)
    if re.search(r"\btoday\b", lower):
        return today
    if re.search(r"\bnext\s+week\b", lower):
        return today + timedelta(days=7)
    if re.search(r"\bnext\s+month\b", lower):
        return today + timedelta(days=30)

    for index, name in enumerate(_WEEKDAYS):
        if re.search(rf"\b{name}\b", lower):
            ahead = (index - today.weekday()) % 7 or 7
            return today + timedelta(days=ahead)
    return None


async def schedule_from_text(text: str, today: date | None = None) -> date:
    """Turn "follow up in 2 weeks" style requests into a reminder date.

    Uses Claude if available, else the rule-based parser.  Raises ValueError
    when neither can find a date.
    """
    today = today or date.today()
    api_key = anthropic_api_key()

    result = None
    if api_key:
        try:
            client = anthropic.Anthropic(api_key=api_key)
            message = client.messages.create(
                model=anthropic_model(),
                max_tokens=32,
                messages=[
                    {
                        "role": "user",
                        "content": SCHEDULE_PROMPT.format(
                            today=today.isoformat(),
                            weekday=today.strftime("%A"),
                            text=text,
                        ),
                    }
                ],
            )
            raw = message.content[0].text.strip()
            result = date.fromisoformat(_ISO_PATTERN.search(raw).group(1))
            if result < today:
                logger.warning("Model proposed a past date %s, ignoring it", result)
                result = None
        except Exception:
            logger.exception("AI scheduling failed, falling back to rule-based parsing")
            result = None

    if result is None:
        logger.info("Using rule-based scheduling")
        result = _rule_based_schedule(text, today)

    if result is None:
        raise ValueError(f"Could not work out a date from {text!r}")
    return result
