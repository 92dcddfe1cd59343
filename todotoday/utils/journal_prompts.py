"""
Daily journal prompts.

Each calendar day maps to one prompt, stable across sessions and devices.
"""

from datetime import date

from todotoday.utils.datetime_utils import format_date

JOURNAL_PROMPTS = (
    "What question have you been avoiding asking yourself?",
    "If silence had a shape, what would yours look like today?",
    "What do you know now that you wish you understood then?",
    "Where does your mind go when it's not being watched?",
    "What's the difference between what you want and what you need?",
    "If you could unlearn one thing, what would it be?",
    "What are you holding onto that's holding you back?",
    "When was the last time you changed your mind about something important?",
    "What would you do if you weren't afraid of what others think?",
    "What's the story you tell yourself that might not be true?",
    "If you could see yourself from someone else's perspective, what would surprise you?",
    "What's the question you're most afraid to answer?",
    "What do you know in your bones but can't prove?",
    "What would you do differently if you knew you couldn't fail?",
    "What's the gap between who you are and who you pretend to be?",
    "What are you waiting for permission to do?",
    "If you could give your younger self one piece of advice, what would you say?",
    "What's the truth you're not ready to admit?",
    "What would you do if you had nothing to lose?",
    "What's the thing you're most afraid of losing?",
    "What does your future self wish you knew now?",
    "What's the lie you tell yourself most often?",
    "What would you do if you weren't trying to prove anything?",
    "What's the question that keeps you up at night?",
    "What are you running from that's actually running toward you?",
    "What would you do if you trusted yourself completely?",
    "What's the thing you know you should do but keep putting off?",
    "What would change if you stopped waiting for the right moment?",
    "What's the difference between who you are and who you want to be?",
    "What would you do if you knew this was your last chance?",
)


def _string_hash(value: str) -> int:
    """Signed 32-bit rolling hash (h * 31 + c), so every client picks the same prompt."""
    h = 0
    for char in value:
        h = (h * 31 + ord(char)) & 0xFFFFFFFF
    if h >= 0x80000000:
        h -= 0x100000000
    return h


def journal_prompt_for(day: date) -> str:
    """Return the prompt shown for a given day."""
    index = abs(_string_hash(format_date(day))) % len(JOURNAL_PROMPTS)
    return JOURNAL_PROMPTS[index]
