from plancoach.prompts.templates import (
    SYSTEM_PROMPT,
    OUTLINE_PROMPT,
    WEEK_PROMPT,
    COACHING_SYSTEM_PROMPT,
    FULL_PLAN_SCHEMA,
    OUTLINE_SCHEMA,
    WEEK_SCHEMA,
    WORKOUT_SCHEMA,
    STEP_SCHEMA,
    CONTINUE_TRUNCATED_PROMPT,
    EMPTY_RESPONSE_PROMPT,
    NO_FOLLOW_UP_DIRECTIVE,
)

__all__ = [
    "SYSTEM_PROMPT",
    "OUTLINE_PROMPT",
    "WEEK_PROMPT",
    "COACHING_SYSTEM_PROMPT",
    "FULL_PLAN_SCHEMA",
    "OUTLINE_SCHEMA",
    "WEEK_SCHEMA",
    "WORKOUT_SCHEMA",
    "STEP_SCHEMA",
    "CONTINUE_TRUNCATED_PROMPT",
    "EMPTY_RESPONSE_PROMPT",
    "NO_FOLLOW_UP_DIRECTIVE",
]
