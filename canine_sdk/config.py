"""
Configuration management for Canine SDK.

This module handles loading and saving configuration from the user's home directory,
specifically in ~/.canine/config.json.
"""

import base64
import copy
import getpass
import json
import os
from typing import Any, Dict, List, Optional, Tuple

import nacl.secret
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC
from dotenv import load_dotenv
from substrateinterface import Keypair

# Define constants
CONFIG_DIR = os.path.expanduser("~/.canine")
CONFIG_FILE = os.path.join(CONFIG_DIR, "config.json")
DEFAULT_CONFIG = {
    "chain": {
        "rest_url": "https://api.jackalprotocol.com",
        "chain_id": "jackal-1",
        "memo": "",
    },
    "providers": {
        "max_providers": 1000,
        "version_filter": [],
        "probe_timeout": 1.5,
        "transfer_timeout": 300.0,
    },
    "upload": {
        "poll_interval": 0.5,
        "poll_max_ticks": 120,
    },
    "wallet": {
        "mnemonic": None,
        "mnemonic_encoded": False,
        "mnemonic_salt": None,  # Salt for password-based encryption
        "address": None,
    },
    "cli": {
        "verbose": False,
    },
}


def ensure_config_dir() -> None:
    """Create configuration directory if it doesn't exist."""
    if not os.path.exists(CONFIG_DIR):
        try:
            os.makedirs(CONFIG_DIR, exist_ok=True)
        except Exception as e:
            print(f"Warning: Could not create configuration directory: {e}")


def load_config() -> Dict[str, Any]:
    """
    Load configuration from the config file.

    If the file doesn't exist, create it with default values.

    Returns:
        Dict[str, Any]: The configuration dictionary
    """
    ensure_config_dir()

    if not os.path.exists(CONFIG_FILE):
        save_config(DEFAULT_CONFIG)
        return copy.deepcopy(DEFAULT_CONFIG)

    try:
        with open(CONFIG_FILE, "r") as f:
            config = json.load(f)

        # Fill in sections and keys added since the file was written
        for section, defaults in DEFAULT_CONFIG.items():
            if section not in config:
                config[section] = copy.deepcopy(defaults)
            else:
                for key, value in defaults.items():
                    config[section].setdefault(key, copy.deepcopy(value))

        return config
    except Exception as e:
        print(f"Warning: Could not load configuration file: {e}")
        print("Using default configuration")
        return copy.deepcopy(DEFAULT_CONFIG)


def save_config(config: Dict[str, Any]) -> bool:
    """
    Save configuration to the config file.

    Args:
        config: The configuration dictionary to save

    Returns:
        bool: True if save was successful, False otherwise
    """
    ensure_config_dir()

    try:
        with open(CONFIG_FILE, "w") as f:
            json.dump(config, f, indent=2)
        return True
    except Exception as e:
        print(f"Warning: Could not save configuration file: {e}")
        return False


def get_config_value(section: str, key: str, default: Any = None) -> Any:
    """
    Get a configuration value from a specific section.

    Args:
        section: The configuration section
        key: The configuration key
        default: Default value if not found

    Returns:
        Any: The configuration value or default
    """
    config = load_config()
    return config.get(section, {}).get(key, default)


def set_config_value(section: str, key: str, value: Any) -> bool:
    """
    Set a configuration value in a specific section.

    Args:
        section: The configuration section
        key: The configuration key
        value: The value to set

    Returns:
        bool: True if save was successful, False otherwise
    """
    config = load_config()

    if section not in config:
        config[section] = {}

    config[section][key] = value
    return save_config(config)


def get_version_filter() -> List[str]:
    """Provider version filter as a list, whatever form it was stored in."""
    value = get_config_value("providers", "version_filter", [])
    if isinstance(value, str):
        return [v.strip() for v in value.split(",") if v.strip()]
    return list(value or [])


def _derive_key_from_password(
    password: str, salt: Optional[bytes] = None
) -> Tuple[bytes, bytes]:
    """
    Derive an encryption key from a password using PBKDF2.

    Args:
        password: The user password
        salt: Optional salt bytes. If None, a new random salt is generated

    Returns:
        Tuple[bytes, bytes]: (derived_key, salt)
    """
    if salt is None:
        salt = os.urandom(16)

    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=nacl.secret.SecretBox.KEY_SIZE,
        salt=salt,
        iterations=100000,
    )
    key = kdf.derive(password.encode("utf-8"))

    return key, salt


def encrypt_with_password(data: str, password: str) -> Tuple[str, str]:
    """
    Encrypt data using a password-derived key.

    Args:
        data: String data to encrypt
        password: User password

    Returns:
        Tuple[str, str]: (base64_encrypted_data, base64_salt)
    """
    try:
        key, salt = _derive_key_from_password(password)
        box = nacl.secret.SecretBox(key)
        encrypted_data = box.encrypt(data.encode("utf-8"))

        encoded_data = base64.b64encode(encrypted_data).decode("utf-8")
        encoded_salt = base64.b64encode(salt).decode("utf-8")

        return encoded_data, encoded_salt

    except Exception as e:
        raise ValueError(f"Error encrypting data with password: {e}")


def decrypt_with_password(encrypted_data: str, salt: str, password: str) -> str:
    """
    Decrypt data using a password-derived key.

    Args:
        encrypted_data: Base64-encoded encrypted data
        salt: Base64-encoded salt
        password: User password

    Returns:
        str: Decrypted data
    """
    encrypted_bytes = base64.b64decode(encrypted_data)
    salt_bytes = base64.b64decode(salt)

    key, _ = _derive_key_from_password(password, salt_bytes)
    box = nacl.secret.SecretBox(key)

    return box.decrypt(encrypted_bytes).decode("utf-8")


def _derive_address(mnemonic: str) -> Optional[str]:
    try:
        return Keypair.create_from_mnemonic(mnemonic).ss58_address
    except Exception as e:
        print(f"Warning: Could not derive account address: {e}")
        return None


def set_mnemonic(
    mnemonic: str, encode: bool = False, password: Optional[str] = None
) -> bool:
    """
    Store the wallet mnemonic in configuration, with optional encryption.

    Args:
        mnemonic: The mnemonic phrase to store
        encode: Whether to encrypt the mnemonic (requires password)
        password: Optional password for encryption (if None and encode=True, will prompt)

    Returns:
        bool: True if saving was successful, False otherwise
    """
    config = load_config()
    wallet = config["wallet"]

    if encode:
        if password is None:
            password = getpass.getpass("Enter password to encrypt mnemonic: ")
            password_confirm = getpass.getpass("Confirm password: ")

            if password != password_confirm:
                print("Error: Passwords do not match")
                return False

        encrypted_data, salt = encrypt_with_password(mnemonic, password)
        wallet["mnemonic"] = encrypted_data
        wallet["mnemonic_encoded"] = True
        wallet["mnemonic_salt"] = salt
    else:
        wallet["mnemonic"] = mnemonic
        wallet["mnemonic_encoded"] = False
        wallet["mnemonic_salt"] = None

    wallet["address"] = _derive_address(mnemonic)
    return save_config(config)


def get_mnemonic(password: Optional[str] = None) -> Optional[str]:
    """
    Get the wallet mnemonic from configuration, decrypting if necessary.

    Args:
        password: Optional password for decryption (if None and needed, will prompt;
                if empty string, will skip decryption for read-only operations)

    Returns:
        Optional[str]: The mnemonic, or None if not available
    """
    wallet = load_config()["wallet"]
    stored = wallet.get("mnemonic")
    if not stored:
        return None

    if not wallet.get("mnemonic_encoded", False):
        return stored

    # Empty password means the caller only needs read-only access
    if password == "":
        return None

    salt = wallet.get("mnemonic_salt")
    if not salt:
        print("Error: Encrypted mnemonic is missing its salt")
        return None

    if password is None:
        password = getpass.getpass("Enter password to decrypt mnemonic: \n\n")

    return decrypt_with_password(stored, salt, password)


def initialize_from_env() -> None:
    """
    Initialize configuration from environment variables.

    Values found in the environment (or a .env file) overwrite the stored ones.
    """
    load_dotenv()

    config = load_config()
    changed = False

    if os.getenv("CANINE_REST_URL"):
        config["chain"]["rest_url"] = os.getenv("CANINE_REST_URL")
        changed = True

    if os.getenv("CANINE_CHAIN_ID"):
        config["chain"]["chain_id"] = os.getenv("CANINE_CHAIN_ID")
        changed = True

    if os.getenv("CANINE_VERSION_FILTER"):
        versions = os.getenv("CANINE_VERSION_FILTER").split(",")
        config["providers"]["version_filter"] = [v.strip() for v in versions if v.strip()]
        changed = True

    if os.getenv("CANINE_MAX_PROVIDERS"):
        try:
            config["providers"]["max_providers"] = int(os.getenv("CANINE_MAX_PROVIDERS"))
            changed = True
        except ValueError:
            print("Warning: CANINE_MAX_PROVIDERS is not an integer, ignoring it")

    if os.getenv("CANINE_MNEMONIC"):
        # Don't encrypt from env variables by default
        mnemonic = os.getenv("CANINE_MNEMONIC")
        config["wallet"]["mnemonic"] = mnemonic
        config["wallet"]["mnemonic_encoded"] = False
        config["wallet"]["mnemonic_salt"] = None
        config["wallet"]["address"] = _derive_address(mnemonic)
        changed = True

    if changed:
        save_config(config)


def get_all_config() -> Dict[str, Any]:
    """
    Get the complete configuration.

    Returns:
        Dict[str, Any]: The full configuration dictionary
    """
    return load_config()


def reset_config() -> bool:
    """
    Reset configuration to default values.

    Returns:
        bool: True if reset was successful, False otherwise
    """
    return save_config(copy.deepcopy(DEFAULT_CONFIG))
