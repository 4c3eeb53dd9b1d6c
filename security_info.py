from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple, Union

# --- Sentinels ---
NOT_AVAILABLE = "N/A"
ERROR = "Error"


# --- Enumerations ---
class BootMode(str, Enum):
    UEFI = "UEFI"
    LEGACY_OR_BIOS = "LegacyOrBIOS"
    UNKNOWN = "Unknown"


class ProtectionStatus(str, Enum):
    DISABLED = "Disabled"
    UNKNOWN = "Unknown"
    ON = "On"
    NOT_APPLICABLE = "NotApplicable"
    ERROR = "Error"


class LockStatus(str, Enum):
    UNLOCKED = "Unlocked"
    LOCKED = "Locked"
    NOT_APPLICABLE = "NotApplicable"
    ERROR = "Error"


class ProbeTier(str, Enum):
    """ Outcome of a single BitLocker query. """
    SUCCESS = "success"
    ABSENT = "absent"   # volume exists but has no BitLocker association
    ERROR = "error"


# --- Raw Readings (as reported by the platform) ---
@dataclass(frozen=True)
class TpmReading:
    is_enabled: Optional[bool] = None
    is_owned: Optional[bool] = None
    spec_version: Optional[str] = None


@dataclass(frozen=True)
class BitLockerReading:
    protection_status: int
    lock_status: int
    encryption_method: str = ""
    encryption_percentage: Optional[float] = None
    key_protectors: Tuple[str, ...] = ()
    auto_unlock: Optional[bool] = None


@dataclass(frozen=True)
class BitLockerProbe:
    tier: ProbeTier
    reading: Optional[BitLockerReading] = None
    error: Optional[str] = None

    @classmethod
    def success(cls, reading: BitLockerReading) -> "BitLockerProbe":
        return cls(ProbeTier.SUCCESS, reading=reading)

    @classmethod
    def absent(cls) -> "BitLockerProbe":
        return cls(ProbeTier.ABSENT)

    @classmethod
    def failed(cls, error: str) -> "BitLockerProbe":
        return cls(ProbeTier.ERROR, error=error)


# --- Host-wide Facts ---
@dataclass(frozen=True)
class TpmFacts:
    """ TPM state for the host. ready/owned/spec_version only mean something when present. """
    present: bool = False
    ready: bool = False
    owned: bool = False
    spec_version: str = NOT_AVAILABLE

    @classmethod
    def absent(cls) -> "TpmFacts":
        return cls()


@dataclass(frozen=True)
class SecureBootFacts:
    secure_boot_enabled: bool = False
    boot_mode: BootMode = BootMode.UNKNOWN

    @classmethod
    def unknown(cls) -> "SecureBootFacts":
        return cls()


# --- Per-drive Record ---
@dataclass(frozen=True)
class DriveRecord:
    """ One report row: host facts flattened next to the BitLocker state of one volume. """
    drive_letter: str

    # Host-wide (copied from TpmFacts / SecureBootFacts)
    tpm_present: bool
    tpm_ready: bool
    tpm_owned: bool
    spec_version: str
    secure_boot_enabled: bool
    boot_mode: BootMode

    # BitLocker
    protection_status: ProtectionStatus = ProtectionStatus.DISABLED
    lock_status: LockStatus = LockStatus.NOT_APPLICABLE
    encryption_method: str = NOT_AVAILABLE
    percentage_encrypted: Union[int, str] = NOT_AVAILABLE
    key_protector_types: str = NOT_AVAILABLE
    auto_unlock: Union[bool, str] = field(default=NOT_AVAILABLE)

    def as_row(self):
        """ Display strings in report column order. """
        return [
            self.drive_letter,
            str(self.tpm_present),
            str(self.tpm_ready),
            str(self.tpm_owned),
            self.spec_version,
            str(self.secure_boot_enabled),
            self.boot_mode.value,
            self.protection_status.value,
            self.lock_status.value,
            self.encryption_method,
            str(self.percentage_encrypted),
            self.key_protector_types,
            str(self.auto_unlock),
        ]
