"""
Collectors turning raw platform readings into report records.

Each collector takes its query as an argument (defaulting to the real WMI /
registry query) and never raises: failures are logged and degrade to the
absent, unknown or Error-tier values of the record being built.
"""
import logging
import re

import wmi_queries
from wmi_queries import describe_error
from security_info import (
    NOT_AVAILABLE, ERROR,
    BootMode, ProtectionStatus, LockStatus, ProbeTier,
    BitLockerProbe, TpmFacts, SecureBootFacts, DriveRecord,
)

logger = logging.getLogger(__name__)

# https://learn.microsoft.com/en-us/windows/win32/secprov/getprotectionstatus-win32-encryptablevolume
PROTECTION_STATUS_MAP = {
    0: ProtectionStatus.DISABLED,
    1: ProtectionStatus.UNKNOWN,
    2: ProtectionStatus.ON,
}

# https://learn.microsoft.com/en-us/windows/win32/secprov/getlockstatus-win32-encryptablevolume
LOCK_STATUS_MAP = {
    0: LockStatus.UNLOCKED,
    1: LockStatus.LOCKED,
}


# --- TPM ---
def format_spec_version(spec_version) -> str:
    """
    Reduces a Win32_Tpm SpecVersion (e.g. "2.0, 0, 1.59") to "major.minor".

    The value is split on every run of non-digits; the first token is the
    major version and the second, if any, the minor ("0" otherwise).
    Returns "N/A" when there is no numeric token at all.
    """
    tokens = [t for t in re.split(r"\D+", str(spec_version)) if t]
    if not tokens:
        return NOT_AVAILABLE
    major = tokens[0]
    minor = tokens[1] if len(tokens) > 1 else "0"
    return f"{major}.{minor}"


def collect_tpm(query=None) -> TpmFacts:
    query = query or wmi_queries.read_tpm
    logger.info("Querying WMI for TPM...")
    try:
        reading = query()
    except Exception as e:
        logger.error(f"TPM Query Failed: {describe_error(e)}")
        return TpmFacts.absent()

    if reading is None:
        logger.info("No TPM reported.")
        return TpmFacts.absent()
    if reading.is_enabled is None or reading.is_owned is None or not str(reading.spec_version or "").strip():
        logger.warning(f"TPM object is missing fields, treating as absent: {reading}")
        return TpmFacts.absent()

    return TpmFacts(
        present=True,
        ready=bool(reading.is_enabled),
        owned=bool(reading.is_owned),
        spec_version=format_spec_version(reading.spec_version),
    )


# --- Secure Boot ---
def boot_mode_from_state(boot_state) -> BootMode:
    if "efi" in str(boot_state).lower():
        return BootMode.UEFI
    return BootMode.LEGACY_OR_BIOS


def collect_secure_boot(confirm=None, boot_state=None) -> SecureBootFacts:
    confirm = confirm or wmi_queries.confirm_secure_boot
    boot_state = boot_state or wmi_queries.read_boot_state
    logger.info("Querying Secure Boot state...")
    # Confirmation throws on non-UEFI firmware; both fields degrade together.
    try:
        enabled = bool(confirm())
        mode = boot_mode_from_state(boot_state())
    except Exception as e:
        logger.error(f"Secure Boot Query Failed: {describe_error(e)}")
        return SecureBootFacts.unknown()
    return SecureBootFacts(secure_boot_enabled=enabled, boot_mode=mode)


# --- Volumes ---
def enumerate_volumes(query=None):
    query = query or wmi_queries.list_fixed_volumes
    logger.info("Enumerating fixed volumes...")
    try:
        volumes = list(query())
    except Exception as e:
        logger.error(f"Volume Enumeration Failed: {describe_error(e)}")
        return []
    logger.info(f"Found {len(volumes)} fixed volume(s): {', '.join(map(str, volumes))}")
    return volumes


# --- BitLocker ---
def probe_bitlocker(volume, query=None) -> BitLockerProbe:
    query = query or wmi_queries.read_bitlocker
    logger.info(f"Querying BitLocker for {volume}...")
    try:
        reading = query(volume)
    except Exception as e:
        err = f"BitLocker Query Failed for {volume}: {describe_error(e)}"
        logger.error(err)
        return BitLockerProbe.failed(err)
    if reading is None:
        return BitLockerProbe.absent()
    return BitLockerProbe.success(reading)


def build_drive_record(volume, probe: BitLockerProbe, tpm: TpmFacts, sb: SecureBootFacts) -> DriveRecord:
    """ Merges one volume's BitLocker probe with the host-wide TPM and Secure Boot facts. """
    host = dict(
        drive_letter=volume,
        tpm_present=tpm.present,
        tpm_ready=tpm.ready,
        tpm_owned=tpm.owned,
        spec_version=tpm.spec_version,
        secure_boot_enabled=sb.secure_boot_enabled,
        boot_mode=sb.boot_mode,
    )

    if probe.tier == ProbeTier.ERROR:
        logger.warning(f"{volume}: BitLocker fields reported as Error ({probe.error})")
        return DriveRecord(
            protection_status=ProtectionStatus.ERROR,
            lock_status=LockStatus.ERROR,
            encryption_method=ERROR,
            percentage_encrypted=ERROR,
            key_protector_types=ERROR,
            auto_unlock=ERROR,
            **host
        )

    if probe.tier == ProbeTier.ABSENT:
        return DriveRecord(
            protection_status=ProtectionStatus.DISABLED,
            lock_status=LockStatus.NOT_APPLICABLE,
            encryption_method=NOT_AVAILABLE,
            percentage_encrypted=NOT_AVAILABLE,
            key_protector_types=NOT_AVAILABLE,
            auto_unlock=NOT_AVAILABLE,
            **host
        )

    reading = probe.reading
    percentage = reading.encryption_percentage
    return DriveRecord(
        protection_status=PROTECTION_STATUS_MAP.get(reading.protection_status, ProtectionStatus.NOT_APPLICABLE),
        lock_status=LOCK_STATUS_MAP.get(reading.lock_status, LockStatus.NOT_APPLICABLE),
        encryption_method=reading.encryption_method or NOT_AVAILABLE,
        percentage_encrypted=int(round(percentage)) if percentage is not None else NOT_AVAILABLE,
        key_protector_types=", ".join(reading.key_protectors) if reading.key_protectors else NOT_AVAILABLE,
        auto_unlock=reading.auto_unlock if reading.auto_unlock is not None else NOT_AVAILABLE,
        **host
    )


def collect_drive_record(volume, tpm: TpmFacts, sb: SecureBootFacts, query=None) -> DriveRecord:
    return build_drive_record(volume, probe_bitlocker(volume, query), tpm, sb)


def collect_security_posture(tpm_query=None, secure_boot_query=None, boot_state_query=None,
                             volume_query=None, bitlocker_query=None):
    """
    Runs the full collection: host facts once, then one DriveRecord per fixed
    volume in enumeration order.
    """
    tpm = collect_tpm(tpm_query)
    sb = collect_secure_boot(secure_boot_query, boot_state_query)
    volumes = enumerate_volumes(volume_query)
    return [collect_drive_record(volume, tpm, sb, bitlocker_query) for volume in volumes]
