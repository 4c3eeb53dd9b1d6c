import logging
import os
import sys
import time

from audit_config import REPORT_COLUMNS, SEPARATOR_WIDTH, REPORT_FILENAME_PREFIX

logger = logging.getLogger(__name__)


def get_output_dir():
    """ Directory holding the executable, works for dev and for PyInstaller """
    if getattr(sys, "frozen", False):
        return os.path.dirname(os.path.abspath(sys.executable))
    script = sys.argv[0] if sys.argv and sys.argv[0] else ""
    if script:
        return os.path.dirname(os.path.abspath(script))
    return os.path.abspath(".")


def format_row(values):
    return "".join(f"{value:<{width}}" for value, (_, width) in zip(values, REPORT_COLUMNS))


def render_report(records):
    """ Fixed-width table: header, separator, then one line per DriveRecord. """
    lines = [format_row([header for header, _ in REPORT_COLUMNS]), "-" * SEPARATOR_WIDTH]
    lines.extend(format_row(record.as_row()) for record in records)
    return "\n".join(lines) + "\n"


def report_filename(timestamp=None):
    timestamp = timestamp or time.strftime('%Y%m%d_%H%M%S')
    return f"{REPORT_FILENAME_PREFIX}_{timestamp}.txt"


def write_report(records, output_dir=None, timestamp=None, stream=None):
    """ Prints the table to the console and saves the same text; returns the file path. """
    text = render_report(records)
    stream = stream or sys.stdout
    stream.write(text)

    filename = os.path.join(output_dir or get_output_dir(), report_filename(timestamp))
    with open(filename, 'w', encoding='utf-8') as f:
        f.write(text)
    logger.info(f"Report saved to {filename}")
    return filename
