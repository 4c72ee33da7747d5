"""Central configuration for the invoice review client."""

import os
import json
import logging
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "http://localhost:8000"
DEFAULT_CURRENCY = "ILS"
DEFAULT_VAT_RATE = 0.18
DEFAULT_TIMEOUT = 30

EXTRACTION_MODES = ("llm", "model")
TOTAL_EDIT_RULES = ("tax_preserving", "rate_reconstruct")


def get_app_name() -> str:
    """Get application name."""
    return "Invoice Review"


def get_project_root() -> Path:
    """Get repository root (parent of the package directory)."""
    return Path(__file__).resolve().parent.parent


def get_default_output_dir() -> Path:
    """Get default output directory.

    Uses INVOICE_OUTPUT_DIR when set, otherwise project root / "out".

    Returns:
        Path object to default output directory (created if needed)
    """
    env_dir = os.getenv('INVOICE_OUTPUT_DIR')
    output_dir = Path(env_dir) if env_dir else get_project_root() / "out"
    output_dir.mkdir(parents=True, exist_ok=True)
    return output_dir


def get_session_path() -> Path:
    """Get path of the session file shared between CLI commands."""
    env_path = os.getenv('INVOICE_SESSION_PATH')
    if env_path:
        return Path(env_path)
    return get_default_output_dir() / "session.json"


def get_pending_notice_path() -> Path:
    """Get path of the pending-files notice snapshot."""
    return get_default_output_dir() / "pending_notice.json"


def get_client_config_path() -> Path:
    """Get path to client configuration file.

    Returns:
        Path to client config file (default: configs/client_config.json)
    """
    env_path = os.getenv('INVOICE_CLIENT_CONFIG')
    if env_path:
        return Path(env_path)
    return get_project_root() / "configs" / "client_config.json"


def load_client_config() -> dict:
    """Load client configuration from file.

    Returns:
        Dict with saved settings (api_url, api_key, currency, vat_rate, ...)
    """
    config_path = get_client_config_path()
    if config_path.exists():
        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                return json.load(f)
        except (OSError, ValueError) as e:
            logger.warning(f"Failed to load client config: {e}")

    return {}


def save_client_config(config: dict) -> None:
    """Save client configuration to file.

    Args:
        config: Dict with client settings
    """
    config_path = get_client_config_path()
    config_path.parent.mkdir(parents=True, exist_ok=True)

    try:
        with open(config_path, 'w', encoding='utf-8') as f:
            json.dump(config, f, indent=2, ensure_ascii=False)
    except OSError as e:
        logger.error(f"Failed to save client config: {e}")
        raise


def get_api_url() -> str:
    """Get base URL of the invoice service.

    Returns:
        INVOICE_API_URL, or the saved api_url, or http://localhost:8000
    """
    url = os.getenv('INVOICE_API_URL')
    if url:
        return url
    return load_client_config().get('api_url') or DEFAULT_API_URL


def get_api_key() -> Optional[str]:
    """Get API key from INVOICE_API_KEY or saved config, or None."""
    key = os.getenv('INVOICE_API_KEY')
    if key:
        return key
    return load_client_config().get('api_key')


def get_api_timeout() -> int:
    """Get request timeout in seconds (INVOICE_API_TIMEOUT, default 30)."""
    value = os.getenv('INVOICE_API_TIMEOUT')
    if value is None:
        return int(load_client_config().get('timeout', DEFAULT_TIMEOUT))
    try:
        return int(value)
    except ValueError:
        logger.warning(f"Invalid INVOICE_API_TIMEOUT: {value}, using {DEFAULT_TIMEOUT}")
        return DEFAULT_TIMEOUT


def get_extraction_mode() -> str:
    """Get extraction endpoint flavour.

    Returns:
        "llm" (OCR + language model, default) or "model" (prebuilt invoice model)
    """
    mode = os.getenv('INVOICE_EXTRACTION_MODE', 'llm').lower()
    if mode not in EXTRACTION_MODES:
        logger.warning(f"Invalid extraction mode: {mode}, using 'llm'")
        return 'llm'
    return mode


def get_default_currency() -> str:
    """Get currency applied at commit time when a record has none."""
    currency = os.getenv('INVOICE_DEFAULT_CURRENCY')
    if currency:
        return currency.upper()
    return load_client_config().get('currency', DEFAULT_CURRENCY)


def get_default_vat_rate() -> float:
    """Get tax rate used until the extraction service reports one.

    Returns:
        Ratio such as 0.18 (INVOICE_DEFAULT_VAT_RATE, saved config, or 0.18)
    """
    value = os.getenv('INVOICE_DEFAULT_VAT_RATE')
    if value is None:
        value = load_client_config().get('vat_rate', DEFAULT_VAT_RATE)
    try:
        rate = float(value)
    except (TypeError, ValueError):
        logger.warning(f"Invalid VAT rate: {value!r}, using {DEFAULT_VAT_RATE}")
        return DEFAULT_VAT_RATE
    if rate < 0:
        logger.warning(f"Negative VAT rate: {rate}, using {DEFAULT_VAT_RATE}")
        return DEFAULT_VAT_RATE
    return rate


def get_total_edit_rule() -> str:
    """Get rule used when the total is edited while tax is already set.

    Returns:
        "tax_preserving" (default): subtotal = total - tax
        "rate_reconstruct": subtotal = total / (1 + rate)
    """
    rule = os.getenv('INVOICE_TOTAL_EDIT_RULE', 'tax_preserving').lower()
    if rule not in TOTAL_EDIT_RULES:
        logger.warning(f"Invalid total edit rule: {rule}, using 'tax_preserving'")
        return 'tax_preserving'
    return rule


def get_customer_id() -> Optional[int]:
    """Get default customer id (INVOICE_CUSTOMER_ID or saved config), or None."""
    value = os.getenv('INVOICE_CUSTOMER_ID')
    if value is None:
        value = load_client_config().get('customer_id')
    if value in (None, ''):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        logger.warning(f"Invalid customer id: {value!r}")
        return None
