"""Cart persistence for the cart engine"""

import logging
import os
import re
from pathlib import Path
from typing import Optional, Protocol

from pydantic import ValidationError

from ..core.errors import ExternalServiceUnavailable
from ..models.cart import Cart

logger = logging.getLogger(__name__)

STORABLE_CART_ID = re.compile(r"[A-Za-z0-9_-]+")


class CartRepository(Protocol):
    """Where carts go between sessions"""

    def load(self, cart_id: str) -> Optional[Cart]:
        ...

    def save(self, cart: Cart) -> None:
        ...

    def delete(self, cart_id: str) -> bool:
        ...


class CartDatabase:
    """In-memory cart storage"""

    def __init__(self):
        # Serialized so a loaded cart never aliases a live one
        self.carts: dict[str, str] = {}

    def load(self, cart_id: str) -> Optional[Cart]:
        """Get a stored cart by ID"""
        payload = self.carts.get(cart_id)
        if payload is None:
            return None
        return Cart.model_validate_json(payload)

    def save(self, cart: Cart) -> None:
        """Store a cart snapshot"""
        self.carts[cart.cart_id] = cart.model_dump_json()

    def delete(self, cart_id: str) -> bool:
        """Delete a stored cart"""
        if cart_id in self.carts:
            del self.carts[cart_id]
            return True
        return False


class FileCartDatabase:
    """Cart storage as one JSON document per cart in a directory"""

    def __init__(self, storage_dir: str):
        self.storage_dir = Path(storage_dir)
        self.storage_dir.mkdir(parents=True, exist_ok=True)

    def _path(self, cart_id: str) -> Path:
        # Cart ids come from clients; one id maps to exactly one file in the directory
        if not STORABLE_CART_ID.fullmatch(cart_id):
            raise ExternalServiceUnavailable(f"Cart id {cart_id!r} cannot be stored")
        return self.storage_dir / f"{cart_id}.json"

    def load(self, cart_id: str) -> Optional[Cart]:
        path = self._path(cart_id)
        if not path.exists():
            return None
        try:
            return Cart.model_validate_json(path.read_text(encoding="utf-8"))
        except (OSError, ValidationError) as e:
            logger.error(f"Failed to load cart {cart_id} from {path}: {e}")
            raise ExternalServiceUnavailable(f"Could not load cart {cart_id}") from e

    def save(self, cart: Cart) -> None:
        path = self._path(cart.cart_id)
        tmp_path = path.with_suffix(".json.tmp")
        try:
            tmp_path.write_text(cart.model_dump_json(), encoding="utf-8")
            os.replace(tmp_path, path)
        except OSError as e:
            logger.error(f"Failed to save cart {cart.cart_id} to {path}: {e}")
            raise ExternalServiceUnavailable(f"Could not save cart {cart.cart_id}") from e

    def delete(self, cart_id: str) -> bool:
        path = self._path(cart_id)
        try:
            path.unlink()
            return True
        except FileNotFoundError:
            return False
        except OSError as e:
            logger.error(f"Failed to delete cart {cart_id} at {path}: {e}")
            raise ExternalServiceUnavailable(f"Could not delete cart {cart_id}") from e
