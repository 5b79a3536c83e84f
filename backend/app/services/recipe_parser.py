"""
Sheet rows -> Recipe.

Rows are folded in order; each row's timing cell is resolved against the
recipe time accumulated by the rows before it.
"""

from typing import List, Sequence

from ..models.recipe import Recipe, RecipeStep
from .duration_parser import parse_step

Row = Sequence[str]


def _cell(row: Row, index: int) -> str:
    if index < len(row) and row[index] is not None:
        return str(row[index]).strip()
    return ""


class RecipeParser:

    @staticmethod
    def is_header(row: Row) -> bool:
        return "start" in _cell(row, 0).lower() or "title" in _cell(row, 1).lower()

    @classmethod
    def compile(cls, rows: Sequence[Row], name: str) -> Recipe:
        data_rows = list(rows)
        if len(data_rows) > 1 and cls.is_header(data_rows[0]):
            data_rows = data_rows[1:]

        steps: List[RecipeStep] = []
        cumulative = 0
        for row in data_rows:
            start_time = _cell(row, 0)
            # Two-column sheets: the timing cell doubles as the title.
            title = _cell(row, 1) if len(row) > 1 else start_time
            description = _cell(row, 2)
            if not title and not description:
                continue
            step, cumulative = parse_step(start_time, title, description, cumulative)
            steps.append(step)

        return Recipe(id=name, name=name, steps=tuple(steps))

    @staticmethod
    def parse_csv(text: str) -> List[List[str]]:
        """Split CSV export text into rows of trimmed cells.

        Quotes toggle quoting and are not kept; rows with no content are dropped.
        """
        rows: List[List[str]] = []
        current: List[str] = []
        cell: List[str] = []
        in_quotes = False

        def end_row():
            current.append("".join(cell).strip())
            cell.clear()
            if any(current):
                rows.append(list(current))
            current.clear()

        length = len(text)
        for i, ch in enumerate(text):
            if ch == '"':
                in_quotes = not in_quotes
            elif in_quotes:
                cell.append(ch)
            elif ch == ",":
                current.append("".join(cell).strip())
                cell.clear()
            elif ch == "\n":
                end_row()
            elif ch == "\r":
                if i + 1 >= length or text[i + 1] != "\n":
                    end_row()
            else:
                cell.append(ch)

        if cell or current:
            end_row()
        return rows

    @classmethod
    def compile_csv(cls, text: str, name: str) -> Recipe:
        return cls.compile(cls.parse_csv(text), name)


def compile_recipe(rows: Sequence[Row], name: str) -> Recipe:
    return RecipeParser.compile(rows, name)
