from typing import Generic, TypeVar

_T = TypeVar("_T")


class OrderedSet(Generic[_T], dict[_T, None]):
    """
    a minimal "ordered set" class. this is needed in some places
    because, while dict guarantees you can recover insertion order
    vanilla sets do not.
    no attempt is made to fully implement the set API, will add
    functionality as needed.
    """

    def __init__(self, iterable=None):
        super().__init__()
        if iterable is not None:
            for item in iterable:
                self.add(item)

    def __repr__(self):
        keys = ", ".join(repr(k) for k in self.keys())
        return f"{{{keys}}}"

    def get(self, *args, **kwargs):
        raise RuntimeError("can't call get() on OrderedSet!")

    def add(self, item: _T) -> None:
        self[item] = None

    def update(self, other):
        super().update(self.__class__.fromkeys(other))

    def copy(self):
        return self.__class__(super().copy())

    @classmethod
    def intersection(cls, *sets):
        res = OrderedSet()
        if len(sets) == 0:
            raise ValueError("undefined: intersection of no sets")
        if len(sets) == 1:
            return sets[0].copy()
        for e in sets[0].keys():
            if all(e in s for s in sets[1:]):
                res.add(e)
        return res


def annotate_source_code(
    source_code: str,
    lineno: int,
    col_offset: int = None,
    context_lines: int = 0,
    line_numbers: bool = False,
) -> str:
    """
    Annotate the location specified by ``lineno`` and ``col_offset`` in the
    source code given by ``source_code`` with a location marker and optional
    line numbers and context lines.

    :param source_code: The source code containing the source location.
    :param lineno: The 1-indexed line number of the source location.
    :param col_offset: The 0-indexed column offset of the source location.
    :param context_lines: The number of contextual lines to include above and
        below the source location.
    :param line_numbers: If true, line numbers are included in the location
        representation.

    :return: A string containing the annotated source code location.
    """
    if lineno is None:
        return ""

    source_lines = source_code.splitlines()
    if lineno < 1 or lineno > len(source_lines):
        raise ValueError("Line number is out of range")

    line_offset = lineno - 1
    start_offset = max(0, line_offset - context_lines)
    end_offset = min(len(source_lines), line_offset + context_lines + 1)

    lines = []
    for i in range(start_offset, end_offset):
        prefix = ""
        if line_numbers:
            marker = "---> " if i == line_offset else "     "
            prefix = f"{marker}{i + 1:>4} "
        lines.append(f"{prefix}{source_lines[i]}".rstrip())
        if i == line_offset and col_offset is not None:
            pad = " " * (len(prefix) + col_offset)
            lines.append(f"{pad}^")

    return "\n".join(lines)
