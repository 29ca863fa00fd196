"""Compare errors by exact text, substring, identity or presence in tests.

Each function returns an empty string when the error matches what is
wanted, and a short message describing the difference otherwise.

Typical use in table-driven tests::

    for case in cases:
        try:
            fn(case.arg)
            err = None
        except Exception as exc:
            err = exc
        assert errdiff.check(err, case.want_err) == ""
"""

from __future__ import annotations

_ESCAPES = {
    '"': '\\"',
    "\\": "\\\\",
    "\a": "\\a",
    "\b": "\\b",
    "\f": "\\f",
    "\n": "\\n",
    "\r": "\\r",
    "\t": "\\t",
    "\v": "\\v",
}


def _quote(s: str) -> str:
    """Return s as a double-quoted literal with non-printable characters escaped."""
    out = []
    for ch in s:
        if ch in _ESCAPES:
            out.append(_ESCAPES[ch])
        elif ch.isprintable():
            out.append(ch)
        else:
            cp = ord(ch)
            if cp < 0x80:
                out.append(f"\\x{cp:02x}")
            elif cp < 0x10000:
                out.append(f"\\u{cp:04x}")
            else:
                out.append(f"\\U{cp:08x}")
    return '"' + "".join(out) + '"'


def text(got: BaseException | None, want: str) -> str:
    """Describe how ``got`` differs from an error whose text is exactly ``want``.

    An empty ``want`` means no error is expected.
    """
    if not want:
        if got is None:
            return ""
        return f"got err={got}, want err=nil"
    if got is None:
        return f"got err=nil, want err with exact text {_quote(want)}"
    if str(got) != want:
        return f"got err={got}, want err with exact text {_quote(want)}"
    return ""


def substring(got: BaseException | None, want: str) -> str:
    """Describe how ``got`` differs from an error whose text contains ``want``.

    An empty ``want`` means no error is expected.
    """
    if not want:
        if got is None:
            return ""
        return f"got err={got}, want err=nil"
    if got is None:
        return f"got err=nil, want err containing {_quote(want)}"
    if want not in str(got):
        return f"got err={got}, want err containing {_quote(want)}"
    return ""


def check(got: BaseException | None, want: object) -> str:
    """Describe how ``got`` differs from ``want``.

    ``want`` may be None (no error expected), a bool (whether any error is
    expected), a string (the error text must contain it) or an exception
    (the error text must equal its text).
    """
    if want is None:
        if got is None:
            return ""
        return f"got err={got}, want err=nil"
    if isinstance(want, bool):
        if want and got is None:
            return "did not get expected error"
        if not want and got is not None:
            return f"got err={got}, want err=nil"
        return ""
    if isinstance(want, str):
        return substring(got, want)
    if isinstance(want, BaseException):
        if got is None:
            return f"got err=nil, want err={want}"
        if str(got) == str(want):
            return ""
        return f"got err={got}, want err={want}"
    return f"unsupported type in Check: {type(want).__name__}"