"""
Configuration constants for the Bitwarden Importer application.
"""

# Application Metadata
APP_VERSION = "1.0"  # Use: Current version of the application. Type: str. Range: Semantic versioning string (e.g., "1.0.0")
APP_NAME = "Bitwarden Importer"  # Use: Full name of the application. Type: str. Range: Any valid string.
APP_TITLE_PREFIX = f"{APP_NAME} v{APP_VERSION}"  # Use: Window title, combining name and version. Type: str (f-string). Range: Derived from APP_NAME and APP_VERSION.
APP_STYLE = 'Fusion'  # Use: PyQt5 application style. Type: str. Range: Valid PyQt5 style names (e.g., 'Fusion', 'Windows', 'Macintosh').

# Bitwarden Settings
BITWARDEN_CLOUD_URL = "https://bitwarden.com"  # Use: Default server URL. Any other non-empty URL triggers `bw config server`. Type: str. Range: Absolute https URL.
BITWARDEN_HELP_URL = "https://bitwarden.com/help"  # Use: "Learn more" link shown in the window. Type: str. Range: Absolute URL.
BITWARDEN_API_KEY_URL = "https://vault.bitwarden.com/#/settings/security/security-keys"  # Use: Link to the page where users find their personal API key. Type: str. Range: Absolute URL.

# Bitwarden CLI Download Settings
CLI_VERSION = "2023.2.0"  # Use: Release of the Bitwarden CLI that gets downloaded and driven. Type: str. Range: Tag suffix of a `cli-v*` release.
CLI_HASH_URL_TEMPLATE = "https://github.com/bitwarden/clients/releases/download/cli-v{version}/bw-{platform}-sha256-{version}.txt"  # Use: Upstream SHA-256 checksum file. Type: str (format template). Range: Must contain {version} and {platform}.
CLI_ZIP_URL_TEMPLATE = "https://github.com/bitwarden/clients/releases/download/cli-v{version}/bw-{platform}-{version}.zip"  # Use: Upstream CLI archive. Type: str (format template). Range: Must contain {version} and {platform}.
CLI_PLATFORM_NAMES = {  # Use: Maps platform.system() to the platform name used in release asset names. Type: dict[str, str]. Range: Values among "windows", "macos", "linux".
    "Windows": "windows",
    "Darwin": "macos",
    "Linux": "linux",
}
CLI_DOWNLOAD_CHUNK_SIZE = 64 * 1024  # Use: Chunk size in bytes when streaming downloads to disk. Type: int. Range: Positive integer.

# File and Directory Names
CACHE_DIR_NAME = "com.bitwarden.importer"  # Use: Name of the per-user cache directory holding the CLI and transient files. Type: str. Range: Any valid directory name.
CLI_FILENAME = "bw"  # Use: Name of the extracted CLI executable on macOS/Linux. Type: str. Range: "bw"
CLI_FILENAME_WINDOWS = "bw.exe"  # Use: Name of the extracted CLI executable on Windows. Type: str. Range: "bw.exe"
CLI_HASH_FILE = "bw.sha256.txt"  # Use: Cached copy of the upstream checksum file. Type: str. Range: Any valid filename.
CLI_HASH_DOWNLOAD_FILE = "bw.sha256.txt.download"  # Use: Checksum file while its archive is being verified and installed. Transient, removed during cleanup. Type: str. Range: Any valid filename.
CLI_ZIP_FILE = "bw.zip"  # Use: Downloaded CLI archive. Transient, removed during cleanup. Type: str. Range: Any valid filename.
CLI_DATA_FILE = "data.json"  # Use: State file the CLI writes into BITWARDENCLI_APPDATA_DIR. Transient, removed during cleanup. Type: str. Range: "data.json"
LASTPASS_EXPORT_FILE = "lastpass-export.csv"  # Use: Interchange CSV handed to `bw import`. Transient, removed during cleanup. Type: str. Range: Any valid filename.
LOG_FILE = "log.txt"  # Use: Debug log file inside the cache directory, written only when LOG_TO_FILE is set. Type: str. Range: Any valid filename.
LOG_TO_FILE = False  # Use: Enables the file log in the cache directory. Type: bool. Range: True or False.
TRANSIENT_FILES = [CLI_DATA_FILE, LASTPASS_EXPORT_FILE, CLI_ZIP_FILE, CLI_HASH_DOWNLOAD_FILE]  # Use: Files deleted before and after every run. Type: list[str]. Range: Filenames relative to the cache directory.

# Bitwarden CLI Environment
ENV_APPDATA_DIR = "BITWARDENCLI_APPDATA_DIR"  # Use: Points the CLI at the cache directory for its state. Type: str. Range: "BITWARDENCLI_APPDATA_DIR"
ENV_NO_INTERACTION = "BW_NOINTERACTION"  # Use: Stops the CLI from prompting. Type: str. Range: "BW_NOINTERACTION"
ENV_CLIENT_ID = "BW_CLIENTID"  # Use: API key client id for `bw login --apikey`. Type: str. Range: "BW_CLIENTID"
ENV_CLIENT_SECRET = "BW_CLIENTSECRET"  # Use: API key client secret for `bw login --apikey`. Type: str. Range: "BW_CLIENTSECRET"
ENV_SESSION = "BW_SESSION"  # Use: Session key for `bw import`. Type: str. Range: "BW_SESSION"
CLI_IMPORT_SUCCESS_MARKER = "Imported"  # Use: Substring `bw import` prints on success. The exit code alone is not trusted. Type: str. Range: Non-empty string.

# Import Services
SERVICE_LASTPASS = "LastPass"  # Use: Display name of the LastPass source. Type: str. Range: Any string.
SUPPORTED_SERVICES = [SERVICE_LASTPASS]  # Use: Services offered in the service selector. Type: list[str]. Range: Keys of SERVICE_IMPORT_FORMATS.
SERVICE_IMPORT_FORMATS = {  # Use: Maps a service to the format name understood by `bw import`. Type: dict[str, str]. Range: Valid `bw import` formats.
    SERVICE_LASTPASS: "lastpasscsv",
}
LASTPASS_CLIENT_DESCRIPTION = "Importer"  # Use: Client description reported to LastPass. Type: str. Range: Any string.
LASTPASS_LOGIN_URL = "https://lastpass.com/login.php"  # Use: LastPass mobile login endpoint, used for logins that need out-of-band approval. Type: str. Range: HTTPS URL.
LASTPASS_OUT_OF_BAND_MAX_ATTEMPTS = 10  # Use: Login requests sent while waiting for out-of-band approval. Type: int. Range: >= 1.
LASTPASS_CSV_FIELDS = ['url', 'username', 'password', 'totp', 'extra', 'name', 'grouping', 'fav']  # Use: Header of the interchange CSV, as read by the `lastpasscsv` importer. Type: list[str]. Range: Column names.

# Command Line Defaults
COMMANDLINE_DEFAULT_KEYS = {  # Use: Maps `key=value` startup arguments to ImportSettings fields. Type: dict[str, str]. Range: Values must be ImportSettings field names.
    "bitwardenServerUrl": "server_url",
    "bitwardenApiKeyClientId": "api_client_id",
    "bitwardenApiKeySecret": "api_client_secret",
    "bitwardenMasterPassword": "master_password",
    "bitwardenKeyConnector": "key_connector",
    "lastpassEmail": "lastpass_email",
    "lastpassMasterPassword": "lastpass_password",
    "lastpassSkipShared": "skip_shared",
}
COMMANDLINE_FLAG_KEYS = {"bitwardenKeyConnector", "lastpassSkipShared"}  # Use: Startup arguments parsed as booleans ("1" means True). Type: set[str]. Range: Subset of COMMANDLINE_DEFAULT_KEYS.

# User-facing Messages
MSG_API_KEY_REQUIRED = "Bitwarden API Key information is required."  # Use: Validation message. Type: str. Range: Any string.
MSG_MASTER_PASSWORD_REQUIRED = "Bitwarden master password is required."  # Use: Validation message. Type: str. Range: Any string.
MSG_UNSUPPORTED_SERVICE = "Unsupported import service."  # Use: Validation message. Type: str. Range: Any string.
MSG_LASTPASS_CREDENTIALS_REQUIRED = "LastPass Email and Master Password are required."  # Use: Validation message. Type: str. Range: Any string.
MSG_EXPORT_FAILED = "Unable to log into your LastPass account. Are your credentials correct?"  # Use: Export failure. Type: str. Range: Any string.
MSG_CLI_SETUP_FAILED = "Unable to set up Bitwarden CLI."  # Use: Download/checksum/extract failure. Type: str. Range: Any string.
MSG_CONFIG_SERVER_FAILED = "Unable to configure Bitwarden server."  # Use: `bw config server` failure. Type: str. Range: Any string.
MSG_LOGIN_FAILED = "Unable to log into your Bitwarden account. Is your API key information correct?"  # Use: `bw login` failure. Type: str. Range: Any string.
MSG_UNLOCK_FAILED = "Unable to unlock your Bitwarden vault. Is your master password correct?"  # Use: `bw unlock` failure. Type: str. Range: Any string.
MSG_IMPORT_FAILED = "Something went wrong with the import."  # Use: `bw import` failure. Type: str. Range: Any string.
MSG_IMPORT_SUCCESS = "Your import was successful!"  # Use: Shown after a complete run. Type: str. Range: Any string.
MSG_OTP_PROMPT = "Enter your LastPass {kind}:"  # Use: Prompt for the LastPass second factor. Type: str (format template). Range: Must contain {kind}.
MSG_OUT_OF_BAND_PROMPT = "Enter your LastPass Authenticator code, or leave it empty and press OK to approve the login on your device:"  # Use: Prompt for out-of-band LastPass approval. Type: str. Range: Any string.
MSG_CACHE_DIR_FAILED = "Unable to create the cache directory."  # Use: Cache directory could not be created. Type: str. Range: Any string.
MSG_UNEXPECTED_ERROR = "Something went wrong. See the log for details."  # Use: Unexpected failure caught by the worker thread. Type: str. Range: Any string.
