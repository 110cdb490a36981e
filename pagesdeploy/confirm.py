"""Confirmation engine: one ``resolve`` contract for every kind of operator prompt.

In unattended mode every request is answered from its precomputed default and
nothing ever blocks. In interactive mode a request whose condition is false is
answered from its false-response; otherwise the request is dispatched to the
handler for its kind.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from rich.console import Console
from rich.prompt import Prompt

from pagesdeploy._log import get_logger
from pagesdeploy._subprocess import run_shell
from pagesdeploy.display import Display
from pagesdeploy.errors import (
    AttemptFailed,
    CallbackFailed,
    InputAttemptsExhausted,
    NoAnswer,
    RetryExhausted,
    UsageError,
)
from pagesdeploy.retry import RetryPolicy

logger = get_logger("confirm")

_YES = {"y", "yes", "true", "1"}

Answer = str | bool


class PromptKind(str, Enum):
    ASK = "ask"
    SECRET = "secret"
    CONFIRM = "confirm"
    SELECT = "select"
    CALLBACK = "callback"


_KIND_ALIASES: dict[str, PromptKind] = {
    "request": PromptKind.ASK,
    "prompt": PromptKind.ASK,
    "password": PromptKind.SECRET,
    "secure": PromptKind.SECRET,
    "yes_no": PromptKind.CONFIRM,
    "yn": PromptKind.CONFIRM,
    "menu": PromptKind.SELECT,
    "choice": PromptKind.SELECT,
    "function": PromptKind.CALLBACK,
    "cmd": PromptKind.CALLBACK,
}


def coerce_kind(kind: PromptKind | str) -> PromptKind:
    if isinstance(kind, PromptKind):
        return kind
    key = kind.strip().lower()
    if key in _KIND_ALIASES:
        return _KIND_ALIASES[key]
    try:
        return PromptKind(key)
    except ValueError:
        raise UsageError(f"Unknown prompt kind: '{kind}'") from None


def normalize_condition(condition: bool | int | str) -> bool:
    """Normalize a prompt condition to a bool.

    Accepts booleans, the integers 0/1, and the strings ``true``/``false``/``0``/``1``
    in any case. Anything else is a usage error.
    """
    if isinstance(condition, bool):
        return condition
    if isinstance(condition, int):
        if condition in (0, 1):
            return bool(condition)
    elif isinstance(condition, str):
        normalized = condition.strip().lower()
        if normalized in ("true", "1"):
            return True
        if normalized in ("false", "0"):
            return False
    raise UsageError(f"Invalid condition: {condition!r} (must be true, false, 0, or 1)")


def is_yes(value: Answer | None) -> bool:
    if isinstance(value, bool):
        return value
    return value is not None and value.strip().lower() in _YES


@dataclass(frozen=True)
class ConfirmationRequest:
    kind: PromptKind
    prompt: str
    condition: bool | int | str = True
    false_response: str | None = None
    default: str | None = None
    # Only consulted by SELECT; None keeps re-prompting until a valid choice.
    max_attempts: int | None = None


class PromptHandler(ABC):
    """Answers an interactive request whose condition is true."""

    @abstractmethod
    def answer(self, engine: ConfirmationEngine, request: ConfirmationRequest) -> Answer: ...


class AskHandler(PromptHandler):
    def answer(self, engine: ConfirmationEngine, request: ConfirmationRequest) -> Answer:
        engine.display.prompt(request.prompt)
        value = Prompt.ask("❯", console=engine.console)
        if not value and request.default:
            return request.default
        return value


class SecretHandler(PromptHandler):
    def answer(self, engine: ConfirmationEngine, request: ConfirmationRequest) -> Answer:
        engine.display.prompt(request.prompt)
        return Prompt.ask("❯", console=engine.console, password=True)


class ConfirmHandler(PromptHandler):
    def answer(self, engine: ConfirmationEngine, request: ConfirmationRequest) -> Answer:
        # Only an explicit yes counts; empty input is a no.
        engine.display.prompt(f"{request.prompt} (y/N)")
        return is_yes(Prompt.ask("❯", console=engine.console))


class SelectHandler(PromptHandler):
    def answer(self, engine: ConfirmationEngine, request: ConfirmationRequest) -> Answer:
        options = [o.strip() for o in request.prompt.split(",") if o.strip()]
        if not options:
            raise UsageError("Select prompt requires a comma-separated list of options")

        engine.display.prompt("Please select an option:")
        for i, option in enumerate(options, 1):
            engine.console.print(f"  {i}) {option}")

        attempts = 0
        while request.max_attempts is None or attempts < request.max_attempts:
            attempts += 1
            raw = Prompt.ask(f"❯ Enter choice (1-{len(options)})", console=engine.console)
            raw = raw.strip()
            if raw.isdigit() and 1 <= int(raw) <= len(options):
                return options[int(raw) - 1]
            engine.display.error(
                f"Invalid choice. Please enter a number between 1 and {len(options)}"
            )
        raise NoAnswer(f"No valid selection after {attempts} attempt(s)")


class CallbackHandler(PromptHandler):
    """Run a registered operation by name, else treat the prompt as a command line."""

    def answer(self, engine: ConfirmationEngine, request: ConfirmationRequest) -> Answer:
        name = request.prompt
        callback = engine.callbacks.get(name)
        if callback is not None:
            logger.debug("Executing function: %s", name)
            result = callback()
            if result is False or (
                isinstance(result, int) and not isinstance(result, bool) and result != 0
            ):
                raise CallbackFailed(f"Callback '{name}' failed")
            return True

        logger.debug("Executing command: %s", name)
        returncode, output = run_shell(name, cwd=str(engine.cwd) if engine.cwd else None)
        if returncode != 0:
            logger.debug("Command output:\n%s", output)
            raise CallbackFailed(f"Failed to execute: {name} (exit code {returncode})")
        return True


_HANDLERS: dict[PromptKind, PromptHandler] = {
    PromptKind.ASK: AskHandler(),
    PromptKind.SECRET: SecretHandler(),
    PromptKind.CONFIRM: ConfirmHandler(),
    PromptKind.SELECT: SelectHandler(),
    PromptKind.CALLBACK: CallbackHandler(),
}


class ConfirmationEngine:
    """Decide per prompt whether to block for the operator or answer unattended."""

    def __init__(
        self,
        interactive: bool,
        display: Display | None = None,
        *,
        callbacks: dict[str, Callable[[], object]] | None = None,
        cwd: Path | None = None,
    ) -> None:
        self.interactive = interactive
        self.display = display or Display()
        self.callbacks: dict[str, Callable[[], object]] = dict(callbacks or {})
        self.cwd = cwd

    @property
    def console(self) -> Console:
        return self.display.console

    def register_callback(self, name: str, fn: Callable[[], object]) -> None:
        self.callbacks[name] = fn

    def resolve(
        self,
        kind: PromptKind | str,
        prompt: str,
        condition: bool | int | str = True,
        false_response: str | None = None,
        default: str | None = None,
        *,
        max_attempts: int | None = None,
    ) -> Answer:
        """Answer a prompt.

        Raises:
            UsageError: If *condition* or *kind* is malformed.
            NoAnswer: If no answer is available in the current mode.
            CallbackFailed: If a callback prompt fails.
        """
        request = ConfirmationRequest(
            kind=coerce_kind(kind),
            prompt=prompt,
            condition=condition,
            false_response=false_response,
            default=default,
            max_attempts=max_attempts,
        )
        return self.resolve_request(request)

    def resolve_request(self, request: ConfirmationRequest) -> Answer:
        condition = normalize_condition(request.condition)
        logger.debug(
            "resolve: kind=%s condition=%s interactive=%s",
            request.kind.value,
            condition,
            self.interactive,
        )

        if not self.interactive:
            if request.default:
                return request.default
            raise NoAnswer(f"Non-interactive mode, no default for: {request.prompt}")

        if not condition:
            if request.false_response:
                return request.false_response
            raise NoAnswer(f"Condition false, no response for: {request.prompt}")

        try:
            return _HANDLERS[request.kind].answer(self, request)
        except EOFError:
            raise NoAnswer(f"Input closed while waiting for: {request.prompt}") from None

    # -- Higher-level helpers --------------------------------------------------

    def confirm(self, message: str, default: bool = False, context: str | None = None) -> bool:
        """Yes/no question; unattended mode answers *default*."""
        if context:
            self.display.info(context)
        fallback = "true" if default else "false"
        return is_yes(self.resolve(PromptKind.CONFIRM, message, True, fallback, fallback))

    def ask_text(
        self,
        prompt: str,
        default: str = "",
        validator: Callable[[str], bool] | None = None,
        max_attempts: int = 3,
    ) -> str:
        """Collect a line of text, re-prompting while *validator* rejects it.

        Raises:
            InputAttemptsExhausted: After *max_attempts* rejected answers; carries *default*.
        """

        def attempt() -> str:
            value = str(self.resolve(PromptKind.ASK, prompt, True, None, default or None))
            if validator is not None and not validator(value):
                raise AttemptFailed(f"Invalid input: {value!r}")
            return value

        def on_retry(number: int, _exc: AttemptFailed) -> None:
            self.display.error(
                f"Invalid input. Please try again (attempt {number}/{max_attempts})"
            )

        policy = RetryPolicy(max_attempts=max_attempts, description="text input")
        try:
            return policy.run(attempt, on_retry=on_retry)
        except RetryExhausted:
            self.display.error(f"Max attempts reached. Using default: {default}")
            raise InputAttemptsExhausted("Max attempts reached for text input", default) from None

    def ask_password(
        self,
        prompt: str = "Enter password",
        confirm_prompt: str = "Confirm password",
        max_attempts: int = 3,
    ) -> str:
        """Read a secret twice until both entries match.

        Raises:
            InputAttemptsExhausted: If the entries never match within *max_attempts*.
        """

        def attempt() -> str:
            first = self.resolve(PromptKind.SECRET, prompt)
            second = self.resolve(PromptKind.SECRET, confirm_prompt)
            if first != second:
                raise AttemptFailed("Passwords don't match")
            return str(first)

        def on_retry(number: int, _exc: AttemptFailed) -> None:
            self.display.error(
                f"Passwords don't match. Please try again (attempt {number}/{max_attempts})"
            )

        policy = RetryPolicy(max_attempts=max_attempts, description="password confirmation")
        try:
            return policy.run(attempt, on_retry=on_retry)
        except RetryExhausted:
            self.display.error("Max attempts reached for password confirmation")
            raise InputAttemptsExhausted("Max attempts reached for password confirmation") from None

    def select(
        self,
        options: Sequence[str] | str,
        default: str | None = None,
        max_attempts: int | None = None,
    ) -> str:
        joined = options if isinstance(options, str) else ",".join(options)
        return str(
            self.resolve(
                PromptKind.SELECT, joined, True, default, default, max_attempts=max_attempts
            )
        )

    def step_gate(
        self,
        number: int,
        total: int,
        name: str,
        description: str = "",
        auto_confirm: bool = False,
    ) -> bool:
        """Announce a step and ask whether to run it. ``False`` means skip, not fail."""
        self.display.step(number, total, name, description)
        if auto_confirm:
            return True
        if self.confirm("Proceed with this step?", default=True):
            return True
        self.display.info("Step skipped by user")
        return False
