import asyncio
import logging
import os
import socket
from typing import Optional

import requests

from devserver_console.actions.base import ActionError
from devserver_console.runtime_config import SEND_URL_ENV

logger = logging.getLogger(__name__)


def get_lan_address() -> str:
    """Best-effort LAN IP of this machine; falls back to loopback."""
    sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    try:
        # No packet is sent; connecting a UDP socket only selects a route
        sock.connect(("10.255.255.255", 1))
        return sock.getsockname()[0]
    except OSError:
        return "127.0.0.1"
    finally:
        sock.close()


def build_url(host: str, port: int, scheme: str = "http") -> str:
    return f"{scheme}://{host}:{port}"


def _post_link(endpoint: str, recipient: str, url: str) -> None:
    response = requests.post(
        endpoint,
        json={"email": recipient, "url": url},
        timeout=10,
    )
    response.raise_for_status()


async def send_link(recipient: str, url: str, endpoint: Optional[str] = None) -> None:
    """POST the link to the delivery endpoint configured in DEVCONSOLE_SEND_URL."""
    endpoint = endpoint or os.environ.get(SEND_URL_ENV)
    if not endpoint:
        raise ActionError(f"No link delivery endpoint configured; set {SEND_URL_ENV}")
    logger.info(f"Sending {url} to {recipient} via {endpoint}")
    try:
        await asyncio.to_thread(_post_link, endpoint, recipient, url)
    except requests.RequestException as e:
        raise ActionError(str(e)) from e
