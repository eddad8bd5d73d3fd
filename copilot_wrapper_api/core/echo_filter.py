"""Suppression of the prompt echo some responses start with."""


class PromptEchoFilter:
    """Strips a verbatim copy of the prompt from the start of a response.

    Deltas are withheld while the accumulated output could still turn into
    a full copy of the prompt. Comparison ignores case and surrounding
    whitespace. One instance is used per turn.
    """

    def __init__(self, prompt: str):
        self.prompt = prompt.strip()
        self._folded_prompt = self.prompt.casefold()
        self._buffer = ""
        self.resolved = not self.prompt
        self.stripped = False
        # Set when the echo was stripped and nothing followed it yet
        self._trim_next = False

    def _matches_prompt(self, text: str) -> bool:
        head = text.lstrip()[: len(self.prompt)]
        return len(head) == len(self.prompt) and head.casefold() == self._folded_prompt

    def _emit(self, text: str) -> str:
        if self._trim_next:
            text = text.lstrip()
            if text:
                self._trim_next = False
        return text

    def feed(self, delta: str) -> str:
        """Consume one delta and return the text that may be shown now."""
        if self.resolved:
            return self._emit(delta)

        self._buffer += delta
        buffered = self._buffer.lstrip()

        if self._matches_prompt(buffered):
            remainder = buffered[len(self.prompt) :].lstrip()
            self._buffer = ""
            self.resolved = True
            self.stripped = True
            self._trim_next = not remainder
            return remainder

        if (
            self._folded_prompt.startswith(buffered.casefold())
            and len(self._buffer) <= 2 * len(self.prompt)
        ):
            return ""

        return self.flush()

    def flush(self) -> str:
        """Give up on the echo and release everything withheld so far."""
        text, self._buffer = self._buffer, ""
        self.resolved = True
        return text

    def strip_full(self, text: str) -> str:
        """Strip the prompt from the start of a complete message."""
        if not self.prompt or not self._matches_prompt(text):
            return text
        self.stripped = True
        return text.lstrip()[len(self.prompt) :].lstrip()
