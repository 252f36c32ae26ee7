"""
Canine SDK - Python interface for Canine chain file storage
"""

from canine_sdk.client import CanineClient
from canine_sdk.config import (
    get_all_config,
    get_config_value,
    get_mnemonic,
    initialize_from_env,
    load_config,
    reset_config,
    save_config,
    set_config_value,
    set_mnemonic,
)
from canine_sdk.handlers import FileDownloadHandler, FileUploadHandler, FolderHandler
from canine_sdk.models import (
    DownloadDetails,
    DownloadProgress,
    Provider,
    StaggeredTracker,
    UploadQueueItem,
)
from canine_sdk.utils import format_size
from canine_sdk.wallet import LocalWallet, WalletHandler

__version__ = "0.1.0"
__all__ = [
    "CanineClient",
    "LocalWallet",
    "WalletHandler",
    "FolderHandler",
    "FileUploadHandler",
    "FileDownloadHandler",
    "UploadQueueItem",
    "StaggeredTracker",
    "DownloadDetails",
    "DownloadProgress",
    "Provider",
    "get_config_value",
    "set_config_value",
    "get_mnemonic",
    "set_mnemonic",
    "load_config",
    "save_config",
    "initialize_from_env",
    "get_all_config",
    "reset_config",
    "format_size",
]
