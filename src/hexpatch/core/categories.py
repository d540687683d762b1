from __future__ import annotations

from hexpatch.core.interpret import PRINTABLE_MAX, PRINTABLE_MIN

NORMAL = "normal"
NONPRINTABLE = "nonprintable"
NULL = "null"
REPEAT_SINGLE = "repeat-single"
REPEAT_MULTI = "repeat-multi"

GROUP_SIZES = (2, 4, 8)


def classify(window: bytes) -> list[str]:
    """Label every byte of `window` for display.

    Rules run in order and later ones win: non-printable, null, a byte equal
    to its neighbour, then any 2/4/8-byte group immediately followed by an
    identical group (both groups are marked).
    """
    cats = [NORMAL] * len(window)
    for i, b in enumerate(window):
        if b < PRINTABLE_MIN or b > PRINTABLE_MAX:
            cats[i] = NONPRINTABLE
    for i, b in enumerate(window):
        if b == 0:
            cats[i] = NULL
    for i in range(1, len(window)):
        if window[i] == window[i - 1]:
            cats[i] = REPEAT_SINGLE
            if cats[i - 1] in (NORMAL, NONPRINTABLE):
                cats[i - 1] = REPEAT_SINGLE
    for size in GROUP_SIZES:
        for i in range(len(window) - 2 * size + 1):
            if window[i : i + size] == window[i + size : i + 2 * size]:
                for k in range(i, i + 2 * size):
                    cats[k] = REPEAT_MULTI
    return cats
