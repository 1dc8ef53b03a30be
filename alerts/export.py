"""Alert export to CSV, JSON, and PDF."""
import io
import csv
import json
import logging
from collections import Counter

import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt
from matplotlib.backends.backend_pdf import PdfPages

from alerts.errors import InvalidRequestError
from models.enums import AlertSeverity

logger = logging.getLogger("microgrid.alerts.export")

CSV_HEADERS = ["ID", "Title", "Description", "Type", "Severity", "Status", "Timestamp"]

FORMATS = {
    "csv": ("text/csv", "alerts.csv"),
    "json": ("application/json", "alerts.json"),
    "pdf": ("application/pdf", "alerts.pdf"),
}

BG = "#F0F1F6"
TEXT = "#1E272E"
TEXT_DIM = "#636E72"
SEVERITY_COLORS = {
    AlertSeverity.CRITICAL: "#DC3545",
    AlertSeverity.WARNING: "#FFC107",
    AlertSeverity.INFO: "#00E0A1",
}
ROWS_PER_PAGE = 28


def to_csv(alerts) -> str:
    buf = io.StringIO()
    writer = csv.writer(buf, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(CSV_HEADERS)
    for a in alerts:
        writer.writerow([
            a.id, a.title, a.description, a.type.value, a.severity.value,
            a.status.value, a.timestamp.isoformat(),
        ])
    return buf.getvalue()


def to_json(alerts) -> str:
    return json.dumps([a.to_dict() for a in alerts], indent=2)


def _summary_page(pdf, alerts):
    fig, (ax_sev, ax_type) = plt.subplots(1, 2, figsize=(11, 8.5))
    fig.patch.set_facecolor(BG)
    fig.suptitle(f"Alert Report ({len(alerts)} alerts)", color=TEXT, fontsize=16, fontweight="bold")

    by_severity = Counter(a.severity for a in alerts)
    labels = [s.value for s in SEVERITY_COLORS]
    ax_sev.bar(labels, [by_severity[s] for s in SEVERITY_COLORS],
               color=list(SEVERITY_COLORS.values()))
    ax_sev.set_title("By severity", color=TEXT_DIM)

    by_type = Counter(a.type.value for a in alerts).most_common()
    if by_type:
        ax_type.barh([t for t, _ in by_type], [n for _, n in by_type], color="#0984E3")
    ax_type.set_title("By type", color=TEXT_DIM)

    for ax in (ax_sev, ax_type):
        for s in ("top", "right"):
            ax.spines[s].set_visible(False)
    pdf.savefig(fig)
    plt.close(fig)


def _table_pages(pdf, alerts):
    for start in range(0, len(alerts), ROWS_PER_PAGE):
        chunk = alerts[start:start + ROWS_PER_PAGE]
        fig, ax = plt.subplots(figsize=(11, 8.5))
        ax.axis("off")
        rows = [[a.timestamp.strftime("%Y-%m-%d %H:%M"), a.severity.value, a.status.value,
                 a.type.value, a.title[:60]] for a in chunk]
        table = ax.table(cellText=rows, colLabels=["Time", "Severity", "Status", "Type", "Title"],
                         loc="upper center", cellLoc="left")
        table.auto_set_font_size(False)
        table.set_fontsize(8)
        table.scale(1, 1.3)
        pdf.savefig(fig)
        plt.close(fig)


def to_pdf(alerts) -> bytes:
    alerts = list(alerts)
    buf = io.BytesIO()
    with PdfPages(buf) as pdf:
        _summary_page(pdf, alerts)
        _table_pages(pdf, alerts)
    logger.debug(f"PDF export rendered for {len(alerts)} alerts")
    return buf.getvalue()


def export_alerts(alerts, fmt="csv"):
    """Render alerts; returns (body, mimetype, filename). Unknown formats raise InvalidRequestError."""
    if fmt not in FORMATS:
        raise InvalidRequestError(f"Invalid export format: {fmt}")
    mimetype, filename = FORMATS[fmt]
    renderer = {"csv": to_csv, "json": to_json, "pdf": to_pdf}[fmt]
    return renderer(list(alerts)), mimetype, filename
