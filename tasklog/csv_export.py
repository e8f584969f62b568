"""CSV export of the log collection with a fixed column layout."""

import csv
import io
import json

# Column order is relied on by spreadsheets built from earlier exports.
CSV_FIELDS = (
    "timestamp",
    "project",
    "sprint",
    "task",
    "elementType",             # "element" or "element_autosave"
    "status",                  # "completed" or "autosave"
    "duration",                # MM:SS, completed elements only
    "elementDurationSeconds",
    "currentElementSeconds",   # autosave entries only
    "elementCountInTask",
    "taskTotalSeconds",
    "sprintTotalSeconds",
    "projectTotalSeconds",
    "taskStarted",
    "sprintStarted",
    "projectStarted",
    "projectDescription",
)


def format_cell(value) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (dict, list)):
        return json.dumps(value, separators=(",", ":"), ensure_ascii=False)
    return str(value)


def entries_to_csv(entries: list, fields=CSV_FIELDS) -> str:
    """Render entries as CSV text, header first. Non-object entries are skipped."""
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(fields)
    for entry in entries:
        if not isinstance(entry, dict):
            continue
        writer.writerow([format_cell(entry.get(name)) for name in fields])
    return buf.getvalue()
