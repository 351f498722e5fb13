"""Fetch templates, photos and logos as raw bytes."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import requests

from card_config import DEFAULT_ASSET_ROOT, DEFAULT_FETCH_TIMEOUT, DEFAULT_TEMPLATE_DIR
from card_layout import check_variant

logger = logging.getLogger(__name__)


class TemplateNotFoundError(FileNotFoundError):
    """Raised when the PNG template for an orientation/side is missing."""


class AssetError(Exception):
    """Base class for photo and logo loading failures."""


class AssetNotFoundError(AssetError):
    pass


class AssetFetchError(AssetError):
    pass


def template_filename(orientation: str, side: str) -> str:
    orientation, side = check_variant(orientation, side)
    return f"{orientation}-{side}.png"


def template_path(template_dir: Path, orientation: str, side: str) -> Path:
    return Path(template_dir) / template_filename(orientation, side)


def load_template(template_dir: Path, orientation: str, side: str) -> bytes:
    path = template_path(template_dir, orientation, side)
    if not path.is_file():
        raise TemplateNotFoundError(
            f"Template not found: {path.name}. Please add it to {Path(template_dir)}"
        )
    return path.read_bytes()


def _is_remote(reference: str) -> bool:
    return reference.lower().startswith(("http://", "https://"))


class AssetLoader:
    """Resolve asset references to bytes.

    References are either ``http(s)`` URLs, absolute or relative filesystem
    paths, or upload paths such as ``/uploads/photos/x.png`` which resolve
    against ``asset_root``.
    """

    def __init__(
        self,
        *,
        template_dir: Path = DEFAULT_TEMPLATE_DIR,
        asset_root: Path = DEFAULT_ASSET_ROOT,
        timeout: float = DEFAULT_FETCH_TIMEOUT,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.template_dir = Path(template_dir)
        self.asset_root = Path(asset_root)
        self.timeout = timeout
        self._session = session

    @property
    def session(self) -> requests.Session:
        if self._session is None:
            self._session = requests.Session()
        return self._session

    def load_template(self, orientation: str, side: str) -> bytes:
        return load_template(self.template_dir, orientation, side)

    def resolve_path(self, reference: str) -> Path:
        if reference.startswith("/uploads"):
            return self.asset_root / reference.lstrip("/")
        path = Path(reference)
        if not path.is_absolute():
            path = self.asset_root / path
        return path

    def fetch(self, reference: str) -> bytes:
        reference = (reference or "").strip()
        if not reference:
            raise AssetNotFoundError("Empty asset reference")

        if _is_remote(reference):
            try:
                response = self.session.get(reference, timeout=self.timeout)
                response.raise_for_status()
            except requests.RequestException as exc:
                raise AssetFetchError(f"Could not fetch {reference}: {exc}") from exc
            logger.debug("Fetched %s (%d bytes)", reference, len(response.content))
            return response.content

        path = self.resolve_path(reference)
        if not path.is_file():
            raise AssetNotFoundError(f"Asset not found: {path}")
        try:
            return path.read_bytes()
        except OSError as exc:
            raise AssetFetchError(f"Could not read {path}: {exc}") from exc


__all__ = [
    "AssetError",
    "AssetFetchError",
    "AssetLoader",
    "AssetNotFoundError",
    "TemplateNotFoundError",
    "load_template",
    "template_filename",
    "template_path",
]
