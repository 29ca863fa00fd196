"""Collect several errors into one exception.

An :class:`ErrorList` gathers errors; ``None`` is ignored, so ``add`` may be
called unconditionally.  :meth:`ErrorList.err` returns a :class:`MultiError`
when anything was collected, or ``None`` otherwise.
"""

from __future__ import annotations

# Default text placed between messages when a MultiError is rendered.
SEPARATOR = ", "


class MultiError(Exception):
    """An exception holding a list of other errors."""

    def __init__(self, errors, separator: str | None = None) -> None:
        self._errors = list(errors)
        self.separator = separator
        super().__init__(*self._errors)

    def errors(self) -> list:
        """Return the errors held by this exception."""
        return list(self._errors)

    def __str__(self) -> str:
        sep = self.separator or SEPARATOR
        return sep.join(str(e) for e in self._errors)


class ErrorList:
    """A working list of errors; it is not itself an exception."""

    def __init__(self, separator: str | None = None) -> None:
        self.separator = separator
        self._errors: list = []

    def __len__(self) -> int:
        return len(self._errors)

    def add(self, *args) -> bool:
        """Add every non-None error and return whether any was added.

        Objects that expose an ``errors()`` method contribute the errors it
        returns; lists and tuples are added element by element.
        """
        added = False
        for err in args:
            if err is None:
                continue
            nested = getattr(err, "errors", None)
            if callable(nested):
                errs = list(nested())
                if errs:
                    self._errors.extend(errs)
                    added = True
                continue
            if isinstance(err, (list, tuple)):
                for item in err:
                    if self.add(item):
                        added = True
                continue
            self._errors.append(err)
            added = True
        return added

    def err(self) -> MultiError | None:
        """Return the collected errors as a MultiError, or None if empty."""
        if not self._errors:
            return None
        return MultiError(self._errors, self.separator)