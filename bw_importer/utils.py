import platform
import os
import stat
import logging

logger = logging.getLogger(__name__)

if platform.system() == "Windows":
    try:
        import win32security
        import win32api
        import win32con
        WINDOWS_SECURITY_AVAILABLE = True
    except ImportError:
        logger.warning("pywin32 not fully installed, cannot set Windows file permissions securely.")
        WINDOWS_SECURITY_AVAILABLE = False
else:
    WINDOWS_SECURITY_AVAILABLE = False


def is_windows() -> bool:
    return platform.system() == "Windows"


def remove_quietly(filepath: str) -> None:
    """Delete a file if it exists. Errors are logged and ignored."""
    try:
        os.remove(filepath)
    except FileNotFoundError:
        pass
    except OSError as e:
        logger.debug(f"Could not remove {filepath}: {e}")


def make_executable(filepath: str) -> None:
    """Add the execute bits to a file, keeping its other permission bits."""
    mode = os.stat(filepath).st_mode
    os.chmod(filepath, mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)


def restrict_file_permissions(filepath: str) -> bool:
    """
    Limit access to a file to the current user.

    On POSIX systems the mode becomes 0600. On Windows the DACL is replaced
    with a single entry for the current user when pywin32 is available.

    Returns:
        True if the permissions were applied, False otherwise
    """
    if not is_windows():
        try:
            os.chmod(filepath, stat.S_IRUSR | stat.S_IWUSR)
            return True
        except OSError as e:
            logger.warning(f"Failed to restrict permissions for {filepath}: {e}")
            return False

    if not WINDOWS_SECURITY_AVAILABLE:
        logger.warning(f"Skipping Windows file permission setting for {filepath}: pywin32 not available.")
        return False

    try:
        user_sid, _, _ = win32security.LookupAccountName(None, win32api.GetUserName())

        dacl = win32security.ACL()
        dacl.AddAccessAllowedAce(
            win32security.ACL_REVISION,
            win32con.GENERIC_READ | win32con.GENERIC_WRITE,
            user_sid
        )

        security = win32security.GetFileSecurity(filepath, win32security.DACL_SECURITY_INFORMATION)
        security.SetSecurityDescriptorDacl(1, dacl, 0)
        win32security.SetFileSecurity(filepath, win32security.DACL_SECURITY_INFORMATION, security)
        return True
    except Exception as e:
        logger.warning(f"Failed to set Windows file permissions for {filepath}: {e}")
        return False
