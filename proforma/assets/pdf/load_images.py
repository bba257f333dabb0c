"""
Load and decode the images a document references (logo, product photos)
before capture.

Every source is fetched in parallel and bounded by a timeout. A source that
fails for any reason maps to None and is drawn as an empty placeholder.

Sources arrive in request bodies, so local files are only read from inside
the image asset directory and remote fetches can be limited to a host list.
"""
import asyncio
import base64
import io
import logging
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Union
from urllib.parse import urlsplit

import requests
from PIL import Image

from proforma.config import Config
from .layoutEngine import Node

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30


class ImageSourceRefused(ValueError):
    """The source points somewhere images may not be loaded from."""


def collect_image_sources(element: Node) -> List[str]:
    """Image sources under element, first occurrence order, no repeats"""
    sources = []
    for node in element.walk():
        if node.kind == "image" and node.src and not node.hidden and node.src not in sources:
            sources.append(node.src)
    return sources


def _decode(data: bytes) -> Image.Image:
    image = Image.open(io.BytesIO(data))
    image.load()
    return image


def resolve_local_path(src: str, asset_dir: Union[str, Path]) -> Path:
    """Path of a local source, relative to asset_dir; anything resolving outside it is refused."""
    root = Path(asset_dir).resolve()
    relative = src[len("file://"):] if src.startswith("file://") else src
    path = (root / relative.lstrip("/")).resolve()
    if path != root and root not in path.parents:
        raise ImageSourceRefused(f"Local image outside {root}")
    return path


def check_remote_host(src: str, allowed_hosts: Sequence[str]):
    host = (urlsplit(src).hostname or "").lower()
    if not host:
        raise ImageSourceRefused("Image URL has no host")
    if allowed_hosts and host not in allowed_hosts:
        raise ImageSourceRefused(f"Image host {host} is not allowed")


def _read_source(src: str, timeout: float, asset_dir: Union[str, Path],
                 allowed_hosts: Sequence[str]) -> Image.Image:
    if src.startswith("data:image"):
        return _decode(base64.b64decode(src.split(",", 1)[1]))
    if src.startswith(("http://", "https://")):
        check_remote_host(src, allowed_hosts)
        response = requests.get(src, timeout=timeout)
        response.raise_for_status()
        return _decode(response.content)
    return _decode(resolve_local_path(src, asset_dir).read_bytes())


async def _load_one(src: str, timeout: float, asset_dir, allowed_hosts) -> Optional[Image.Image]:
    try:
        return await asyncio.wait_for(
            asyncio.to_thread(_read_source, src, timeout, asset_dir, allowed_hosts),
            timeout=timeout,
        )
    except asyncio.TimeoutError:
        logger.warning(f"Image load timed out after {timeout}s: {src[:80]}")
    except ImageSourceRefused as e:
        logger.warning(f"Image source refused ({e}): {src[:80]}")
    except Exception as e:
        logger.warning(f"Image failed to load ({e}): {src[:80]}")
    return None


async def preload_images(sources: Iterable[str], timeout: float = DEFAULT_TIMEOUT,
                         asset_dir: Union[str, Path, None] = None,
                         allowed_hosts: Optional[Sequence[str]] = None) -> Dict[str, Optional[Image.Image]]:
    """
    Fetch all sources concurrently. Returns src -> image, or None for an
    absent image. Never raises for a broken or refused source.

    Local paths (bare or file://) are read relative to asset_dir, which
    defaults to Config.IMAGE_ASSET_DIR. http(s) hosts are checked against
    allowed_hosts, defaulting to Config.IMAGE_ALLOWED_HOSTS.
    """
    sources = list(dict.fromkeys(sources))
    if not sources:
        return {}
    asset_dir = asset_dir or Config.IMAGE_ASSET_DIR
    allowed_hosts = Config.IMAGE_ALLOWED_HOSTS if allowed_hosts is None else [h.lower() for h in allowed_hosts]
    results = await asyncio.gather(*(_load_one(src, timeout, asset_dir, allowed_hosts) for src in sources))
    loaded = sum(1 for image in results if image is not None)
    logger.info(f"Preloaded {loaded}/{len(sources)} images")
    return dict(zip(sources, results))
