# Constants
API_URL = "https://api.fshare.vn/api"
FILE_BASE_URL = "https://www.fshare.vn/file/"
USER_AGENT = "fshare-python"

DEFAULT_BUF_SIZE = 65536  # 64 KB
DEFAULT_CHUNK_SIZE = 16 * 1024 * 1024  # 16 MB
DEFAULT_READ_SIZE = 65536

# 1: private, 0: public
DEFAULT_SECURED = 1

# Environment variables
ENV_APP_KEY = "FSHARE_APP_KEY"
ENV_USER_EMAIL = "FSHARE_USER_EMAIL"
ENV_PASSWORD = "FSHARE_PASSWORD"

# Operation modes
MODE_DOWNLOAD = "download"
MODE_UPLOAD = "upload"

# Redirect modes
REDIRECT_FOLLOW = "follow"
REDIRECT_MANUAL = "manual"
REDIRECT_ERROR = "error"
REDIRECT_MODES = (REDIRECT_FOLLOW, REDIRECT_MANUAL, REDIRECT_ERROR)

# Sent along with every chunk for compatibility with the upload endpoint
CHUNK_HEADERS = {
    "Accept": "*/*",
    "Accept-Language": "en-US,en;q=0.5",
    "Accept-Encoding": "gzip, deflate, br",
    "Connection": "keep-alive",
}
