import logging
import os
import platform
import sys
import tempfile
import time

from audit_config import *
from collectors import collect_security_posture
from report_writer import write_report
from wmi_queries import check_wmi_service

logger = logging.getLogger(__name__)

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def setup_logging():
    """ File log (INFO) in the temp directory plus console errors; returns the log path. """
    log_path = os.path.join(tempfile.gettempdir(), f"{LOG_FILENAME_PREFIX}__{time.strftime('%Y%m%d_%H%M%S')}.log")
    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    # create file handler which logs even info messages
    fh = logging.FileHandler(log_path, encoding='utf-8')
    fh.setLevel(logging.INFO)
    # create console handler with a higher log level
    ch = logging.StreamHandler()
    ch.setLevel(logging.ERROR)
    formatter = logging.Formatter(LOG_FORMAT)
    fh.setFormatter(formatter)
    ch.setFormatter(formatter)
    root.addHandler(fh)
    root.addHandler(ch)
    return log_path


def run_prechecks():
    """ Logs platform problems up front. Never stops the run; collectors degrade on their own. """
    if platform.system() != "Windows":
        logger.error(f"{APP_NAME} is designed for Windows only (running on {platform.system()}).")
        return

    wmi_service_ok, wmi_service_status = check_wmi_service(WMI_SERVICE_NAME)
    if wmi_service_ok:
        logger.info(f"WMI Service ('{WMI_SERVICE_NAME}'): {wmi_service_status}")
    else:
        logger.error(f"WMI Service ('{WMI_SERVICE_NAME}') not running or inaccessible. Status: {wmi_service_status}")


def main():
    try:
        log_path = setup_logging()
        logger.info(f"{APP_NAME} started on {platform.node()}; logging to {log_path}")
        run_prechecks()
        records = collect_security_posture()
        report_path = write_report(records)
    except Exception as e:
        logger.critical(f"CRITICAL ERROR during audit: {type(e).__name__}: {e}")
        return 1
    print(f"\nReport saved to {report_path}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
