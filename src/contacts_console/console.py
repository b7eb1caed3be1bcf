"""Line-oriented console I/O used by the menus.

Input, output and password entry are injectable so menu flows can be driven
by scripted input.
"""
import getpass
import logging
from typing import Callable, Optional, Sequence

logger = logging.getLogger("contacts-console.console")

CANCEL = "0"


class Console:
    """Prompts and output for one interactive process."""

    def __init__(
        self,
        input_fn: Callable[[str], str] = input,
        output_fn: Callable[[str], None] = print,
        secret_fn: Callable[[str], str] = getpass.getpass,
    ):
        self._input = input_fn
        self._output = output_fn
        self._secret = secret_fn

    def write(self, text: str = "") -> None:
        self._output(text)

    def info(self, text: str) -> None:
        self._output(f"-> {text}")

    def error(self, text: str) -> None:
        self._output(f"Error: {text}")

    def prompt_line(self, prompt: str) -> str:
        """Read one line, stripped of surrounding whitespace."""
        return self._input(f"{prompt}: ").strip()

    def prompt_secret(self, prompt: str) -> str:
        return self._secret(f"{prompt}: ")

    def prompt_int(self, prompt: str) -> Optional[int]:
        """
        Read a whole number.

        Returns:
            The number, or None after reporting a non-numeric answer
        """
        raw = self.prompt_line(prompt)
        try:
            return int(raw)
        except ValueError:
            self.error("Please enter a number.")
            return None

    def prompt_id(self, prompt: str) -> Optional[int]:
        """
        Read a record ID; ``0`` cancels.

        Returns:
            A positive ID, or None if the operator cancelled or typed garbage
        """
        value = self.prompt_int(f"{prompt} (0 to cancel)")
        if value is None:
            return None
        if value == 0:
            self.info("Cancelled.")
            return None
        if value < 0:
            self.error("IDs are positive numbers.")
            return None
        return value

    def confirm(self, prompt: str) -> bool:
        """Ask a yes/no question; anything but yes means no."""
        answer = self.prompt_line(f"{prompt} (yes/no)")
        return answer.lower() in ("yes", "y")

    def render_menu(self, title: str, options: Sequence[str]) -> Optional[int]:
        """
        Show a numbered menu and read the selection.

        Options are numbered from 1; ``0`` is always the way back.

        Returns:
            The selected number, or None for a non-numeric answer
        """
        self.write()
        self.write(f"=== {title} ===")
        for number, label in enumerate(options, start=1):
            self.write(f"{number}. {label}")
        self.write("0. Back / Logout")
        return self.prompt_int("Select")
