"""
Thin query layer over the Windows management interfaces (WMI and the registry).

Every function here either returns a raw reading or raises. Deciding what a
failure means for the report is left to the collectors.
"""
import logging

import psutil

from audit_config import (
    TPM_NAMESPACE, VOLUME_ENCRYPTION_NAMESPACE,
    SECURE_BOOT_STATE_KEY, SECURE_BOOT_STATE_VALUE,
    FIRMWARE_TYPE_KEY, FIRMWARE_TYPE_VALUE,
    FIXED_DRIVE_TYPE, WMI_SERVICE_NAME,
)
from security_info import TpmReading, BitLockerReading

logger = logging.getLogger(__name__)

# --- Attempt Imports ---
# WMI
try:
    import wmi
    _wmi_available = True
except ImportError:
    wmi = None
    _wmi_available = False
# WinReg
try:
    import winreg
    _winreg_available = True
except ImportError:
    winreg = None
    _winreg_available = False
# COM utilities (only used to describe COM errors)
try:
    import pythoncom
except ImportError:
    pythoncom = None


# https://learn.microsoft.com/en-us/windows/win32/secprov/getencryptionmethod-win32-encryptablevolume
ENCRYPTION_METHODS = {
    0: "None",
    1: "Aes128Diffuser",
    2: "Aes256Diffuser",
    3: "Aes128",
    4: "Aes256",
    5: "Hardware",
    6: "XtsAes128",
    7: "XtsAes256",
}

# https://learn.microsoft.com/en-us/windows/win32/secprov/getkeyprotectortype-win32-encryptablevolume
KEY_PROTECTOR_TYPES = {
    0: "Unknown",
    1: "Tpm",
    2: "ExternalKey",
    3: "RecoveryPassword",
    4: "TpmPin",
    5: "TpmStartupKey",
    6: "TpmPinStartupKey",
    7: "PublicKey",
    8: "Password",
    9: "TpmNetworkKey",
    10: "AdAccountOrGroup",
}

FIRMWARE_TYPES = {1: "Legacy BIOS", 2: "UEFI"}


# --- Errors ---
class PlatformQueryError(Exception):
    """ A platform management query could not be answered. """


class WmiUnavailableError(PlatformQueryError):
    """ The wmi/winreg modules are missing (non-Windows host or pywin32 not installed). """


class BitLockerMethodError(PlatformQueryError):
    """ A Win32_EncryptableVolume method returned a non-zero ReturnValue. """

    def __init__(self, method_name, return_value):
        self.method_name = method_name
        self.return_value = return_value
        super().__init__(f"{method_name} returned 0x{return_value & 0xFFFFFFFF:08X}")


def describe_error(e: Exception) -> str:
    """ One-line description of an exception for log messages. """
    if pythoncom is not None and isinstance(e, pythoncom.com_error):
        return f"COM Error HRESULT={e.hresult}: {e}"
    return f"{type(e).__name__}: {e}"


# --- Connections ---
def _connect(namespace=None):
    if not _wmi_available:
        raise WmiUnavailableError("wmi module not found")
    if namespace:
        return wmi.WMI(namespace=namespace)
    return wmi.WMI()


def _read_hklm_value(key_path, value_name):
    if not _winreg_available:
        raise WmiUnavailableError("winreg module not found")
    with winreg.OpenKey(winreg.HKEY_LOCAL_MACHINE, key_path, 0, winreg.KEY_READ) as reg_key:
        value, _ = winreg.QueryValueEx(reg_key, value_name)
    return value


# --- TPM ---
def read_tpm():
    """ Returns the first Win32_Tpm instance as a TpmReading, or None when no TPM is reported. """
    c_tpm = _connect(TPM_NAMESPACE)
    tpm_info_list = c_tpm.Win32_Tpm()
    if not tpm_info_list:
        return None
    tpm_info = tpm_info_list[0]
    return TpmReading(
        is_enabled=getattr(tpm_info, "IsEnabled_InitialValue", None),
        is_owned=getattr(tpm_info, "IsOwned_InitialValue", None),
        spec_version=getattr(tpm_info, "SpecVersion", None),
    )


# --- Secure Boot ---
def confirm_secure_boot() -> bool:
    """
    True when UEFI Secure Boot is on.

    Raises FileNotFoundError on firmware without Secure Boot support (the
    state key only exists on UEFI systems).
    """
    return bool(_read_hklm_value(SECURE_BOOT_STATE_KEY, SECURE_BOOT_STATE_VALUE))


def read_boot_state() -> str:
    """ Firmware the running OS was booted from, as a descriptive string. """
    firmware_type = _read_hklm_value(FIRMWARE_TYPE_KEY, FIRMWARE_TYPE_VALUE)
    return FIRMWARE_TYPES.get(firmware_type, f"Unknown Firmware ({firmware_type})")


# --- Volumes ---
def list_fixed_volumes():
    """
    Drive identifiers ("C:", "D:", ...) of local fixed disks, in WMI order.

    Falls back to psutil's partition list when WMI cannot be queried.
    """
    try:
        c = _connect()
        return [disk.DeviceID for disk in c.Win32_LogicalDisk(DriveType=FIXED_DRIVE_TYPE)]
    except Exception as e:
        logger.error(f"Logical Disk WMI Query Failed: {describe_error(e)}. Falling back to psutil.")

    volumes = []
    for partition in psutil.disk_partitions(all=False):
        if "fixed" in partition.opts.split(","):
            volumes.append(partition.device.rstrip("\\"))
    return volumes


# --- BitLocker ---
def _call(volume, method_name, **kwargs):
    """ Calls a Win32_EncryptableVolume method and returns its out-parameters by name. """
    method = getattr(volume, method_name)
    values = method(**kwargs)
    names = [name for name, _ in method.out_parameter_names]
    result = dict(zip(names, values))
    return_value = result.get("ReturnValue", 0)
    if return_value:
        raise BitLockerMethodError(method_name, return_value)
    return result


def _key_protector_names(volume):
    names = []
    try:
        protector_ids = _call(volume, "GetKeyProtectors", KeyProtectorType=0)["VolumeKeyProtectorID"] or []
        for protector_id in protector_ids:
            protector_type = _call(volume, "GetKeyProtectorType", VolumeKeyProtectorID=protector_id)["KeyProtectorType"]
            names.append(KEY_PROTECTOR_TYPES.get(protector_type, f"Unknown ({protector_type})"))
    except BitLockerMethodError as e:
        logger.warning(f"Key protectors unavailable: {e}")
        return ()
    return tuple(names)


def _encryption_method(volume):
    try:
        method_code = _call(volume, "GetEncryptionMethod")["EncryptionMethod"]
    except BitLockerMethodError as e:
        logger.warning(f"Encryption method unavailable: {e}")
        return ""
    return ENCRYPTION_METHODS.get(method_code, f"Unknown ({method_code})")


def _encryption_percentage(volume):
    # Locked data volumes refuse conversion queries (FVE_E_LOCKED_VOLUME).
    try:
        return _call(volume, "GetConversionStatus")["EncryptionPercentage"]
    except BitLockerMethodError as e:
        logger.warning(f"Encryption percentage unavailable: {e}")
        return None


def _auto_unlock(volume):
    # The OS volume cannot carry auto-unlock; the method reports an error code for it.
    try:
        return bool(_call(volume, "IsAutoUnlockEnabled")["IsAutoUnlockEnabled"])
    except BitLockerMethodError as e:
        logger.info(f"Auto-unlock not applicable: {e}")
        return None


def read_bitlocker(drive_letter):
    """
    Returns the BitLocker state of one volume as a BitLockerReading, or None
    when the volume has no Win32_EncryptableVolume association.

    Only the protection and lock status calls are required; the remaining
    fields come back empty when their method reports an error code.
    """
    c_bde = _connect(VOLUME_ENCRYPTION_NAMESPACE)
    volumes = c_bde.Win32_EncryptableVolume(DriveLetter=drive_letter)
    if not volumes:
        return None
    volume = volumes[0]

    return BitLockerReading(
        protection_status=_call(volume, "GetProtectionStatus")["ProtectionStatus"],
        lock_status=_call(volume, "GetLockStatus")["LockStatus"],
        encryption_method=_encryption_method(volume),
        encryption_percentage=_encryption_percentage(volume),
        key_protectors=_key_protector_names(volume),
        auto_unlock=_auto_unlock(volume),
    )


# --- Service ---
def check_wmi_service(service_name=WMI_SERVICE_NAME) -> (bool, str):
    """ Checks if the WMI service is running. """
    try:
        service = psutil.win_service_get(service_name)
        status = service.status()
        if status == 'running':
            return True, "Running"
        else:
            return False, f"Service status: {status}"
    except psutil.NoSuchProcess:
        return False, "Service not found (NoSuchProcess)"
    except Exception as e:
        return False, f"Error checking service: {e}"
