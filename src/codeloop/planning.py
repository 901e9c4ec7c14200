"""Optional planning pass: a reasoning model drafts steps before the coding turn."""

from typing import Optional

from .errors import CodeloopError
from .history import Message
from .logger import get_logger
from .tag_filter import strip_think

_log = get_logger("planning")

PLAN_MARKER = "[[codeloop_plan]]"

PLANNING_PROMPT = """You are a senior software engineer. Given a coding task, create a clear, concise execution plan.

Output a brief summary followed by 3-5 numbered steps.

Format:
**Plan:** [One sentence describing the approach]
1. [Step 1 - be specific and actionable]
2. [Step 2]
3. [Step 3]

Be concise and focus on WHAT to do, not WHY. No explanations, no thinking process, no extra text."""

PLAN_TEMPERATURE = 0.3
PLAN_MAX_TOKENS = 1000

GREETINGS = ("hi", "hello", "hey", "thanks", "thank you", "bye", "goodbye")

QUESTION_STARTERS = (
    "what is", "what's", "who is", "who's", "where is", "where's",
    "when is", "when's", "why is", "why's", "how does", "how is",
    "is there", "are there", "can you tell", "could you tell",
    "do you know", "does this",
)

INFO_PATTERNS = ("explain", "describe", "show me", "list", "what are", "tell me about")


def should_skip_planning(text: str) -> bool:
    """True for input that is too small or too conversational to plan."""
    trimmed = text.strip().lower()
    if len(trimmed) < 5 or trimmed.startswith("/"):
        return True
    if PLAN_MARKER in text:
        return True

    words = trimmed.split()
    if len(words) < 3:
        return True
    if any(trimmed == g or trimmed.startswith(g + " ") or trimmed.startswith(g + ",") for g in GREETINGS):
        return True
    if trimmed.startswith(QUESTION_STARTERS):
        return True
    if len(words) < 8 and trimmed.startswith(INFO_PATTERNS):
        return True
    return False


def augment_with_plan(original_text: str, plan_text: str) -> str:
    return f"{PLAN_MARKER}\n\nPLAN:\n{plan_text}\n\nTASK:\n{original_text}"


def format_plan_display(plan_text: Optional[str]) -> str:
    lines = [line.strip() for line in (plan_text or "").splitlines() if line.strip()]
    if not lines:
        return "No plan generated"
    body = "".join(f"  {line}\n" for line in lines)
    return f"\n\033[36m\033[1m  Plan:\033[0m\n{body}"


async def generate_plan(client, task_text: str) -> Optional[str]:
    """Ask the reasoning model for a plan. Returns None when skipped or on failure.

    ``client`` is a ``StreamingClient`` bound to the reasoning model.
    """
    if should_skip_planning(task_text):
        return None
    messages = [Message.system(PLANNING_PROMPT), Message.user(f"Task: {task_text}")]
    try:
        content = await client.complete(messages, temperature=PLAN_TEMPERATURE, max_tokens=PLAN_MAX_TOKENS)
    except CodeloopError as e:
        _log.warning("planning failed: %s", e)
        return None
    plan = strip_think(content).strip()
    return plan or None


class Planner:
    """Callable used by AgentLoop to rewrite user input with a plan."""

    def __init__(self, client, on_plan=None):
        self.client = client
        self.on_plan = on_plan

    async def __call__(self, user_input: str) -> str:
        plan = await generate_plan(self.client, user_input)
        if plan is None:
            return user_input
        _log.info("plan generated (%d chars)", len(plan))
        if self.on_plan:
            self.on_plan(plan)
        return augment_with_plan(user_input, plan)
