import csv
import io
from collections.abc import Iterator


def flatten_rows(rows: list[dict]) -> Iterator[dict]:
    """Depth-first walk of statement rows, parents before their children."""
    for r in rows:
        yield r
        yield from flatten_rows(r.get("children") or [])


def _cell(value, column_type: str) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "Yes" if value else "No"
    if isinstance(value, (int, float)):
        if column_type == "currency":
            return f"{value:.2f}"
        if column_type == "percentage":
            return f"{value:.1f}%"
        return str(value)
    return str(value)


def report_to_csv(report: dict) -> str:
    """Render an assembled statement envelope as CSV text.

    A few header lines (title, date range, generation time) precede the table;
    nested rows are flattened and indented two spaces per depth level in the
    Account column.
    """
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")

    writer.writerow([report.get("title") or report["type"]])
    date_range = report.get("dateRange")
    if date_range and (date_range.get("startDate") or date_range.get("endDate")):
        writer.writerow([f"{date_range.get('startDate') or ''} - {date_range.get('endDate') or ''}"])
    writer.writerow([f"Generated: {report['generatedAt']}"])
    writer.writerow([])

    data = report.get("data") or {}
    columns = data.get("columns", [])
    writer.writerow(["Account", *(col["label"] for col in columns)])
    for r in flatten_rows(data.get("rows", [])):
        values = r.get("values", {})
        writer.writerow([
            "  " * r.get("depth", 0) + r["name"],
            *(_cell(values.get(col["key"]), col["type"]) for col in columns),
        ])
    return buf.getvalue()
