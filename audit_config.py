# --- Application ---
APP_NAME = "Windows Security Audit"
REPORT_FILENAME_PREFIX = "WindowsSecurityAudit"
LOG_FILENAME_PREFIX = "windows_security_audit"
WMI_SERVICE_NAME = "Winmgmt"

# --- WMI Namespaces ---
TPM_NAMESPACE = "root/cimv2/security/microsofttpm"
VOLUME_ENCRYPTION_NAMESPACE = "root/cimv2/security/microsoftvolumeencryption"

# --- Registry (HKEY_LOCAL_MACHINE) ---
SECURE_BOOT_STATE_KEY = r"SYSTEM\CurrentControlSet\Control\SecureBoot\State"
SECURE_BOOT_STATE_VALUE = "UEFISecureBootEnabled"
FIRMWARE_TYPE_KEY = r"SYSTEM\CurrentControlSet\Control"
FIRMWARE_TYPE_VALUE = "PEFirmwareType"

# Win32_LogicalDisk.DriveType: 2=Removable, 3=Local Disk, 4=Network, 5=CD, 6=RAM disk
FIXED_DRIVE_TYPE = 3

# --- Report Layout ---
REPORT_COLUMNS = [
    ("Drive", 6),
    ("TPMPres", 8),
    ("TPMReady", 8),
    ("TPMOwn", 8),
    ("SpecVer", 10),
    ("SB", 8),
    ("BootMode", 12),
    ("BLStatus", 12),
    ("Lock", 10),
    ("EncryptMethod", 15),
    ("PctEnc", 8),
    ("KeyProtectors", 20),
    ("AutoUnlock", 10),
]
SEPARATOR_WIDTH = 140
