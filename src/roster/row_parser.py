# ABOUTME: Splits one line of a delimited extract into trimmed field strings.
# ABOUTME: Honors quoted fields, embedded delimiters, and doubled-quote escapes.

from typing import List

QUOTE = '"'


def parse_row(line: str, delimiter: str = ",") -> List[str]:
    """
    Split ``line`` on ``delimiter`` outside of double quotes.

    A doubled quote inside a quoted field yields one literal quote. Unbalanced
    quotes never raise; the rest of the line is read as quoted. The final field
    is always emitted, so a trailing delimiter produces a trailing empty field.
    """

    fields: List[str] = []
    current: List[str] = []
    in_quotes = False
    i = 0
    length = len(line)
    while i < length:
        char = line[i]
        if char == QUOTE:
            if in_quotes and i + 1 < length and line[i + 1] == QUOTE:
                current.append(QUOTE)
                i += 1
            else:
                in_quotes = not in_quotes
        elif char == delimiter and not in_quotes:
            fields.append("".join(current).strip())
            current = []
        else:
            current.append(char)
        i += 1
    fields.append("".join(current).strip())
    return fields
