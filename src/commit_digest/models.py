from dataclasses import dataclass

METHODS = ("tag", "date", "count")


@dataclass
class Selection:
    """Which slice of history to send to the model."""
    method: str
    branch: str | None = None
    days: int | None = None
    start_tag: str | None = None
    end_tag: str | None = None
    start_date: str | None = None
    end_date: str | None = None
    number: int | None = None


@dataclass
class CommitRange:
    description: str
    text: str

    @property
    def empty(self) -> bool:
        return not self.text.strip()

    @property
    def count(self) -> int:
        return len([line for line in self.text.splitlines() if line.strip()])


def validate_selection(sel: Selection) -> str | None:
    """Return a usage error message for *sel*, or None when it is consistent."""
    if sel.method == "days":
        if sel.days is None or sel.days < 1:
            return "Number of days must be a positive integer."
        return None

    if not sel.method:
        return "Selection method is required."
    if sel.method not in METHODS:
        return f"Invalid method '{sel.method}'. Choose 'tag', 'date' or 'count'."

    has_tags = bool(sel.start_tag or sel.end_tag)
    has_dates = bool(sel.start_date or sel.end_date)

    if sel.method != "tag" and has_tags:
        return "Tag options are only valid with 'tag' method."
    if sel.method != "date" and has_dates:
        return "Start date and end date options are only valid with 'date' method."
    if sel.method != "count" and sel.number is not None:
        return "--number is only valid with 'count' method."

    if sel.method == "date" and not has_dates:
        return "At least one of start date or end date must be specified for 'date' method."
    if sel.method == "count" and sel.number is not None and sel.number < 1:
        return "--number must be a positive integer."
    return None
