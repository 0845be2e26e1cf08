"""
Merging of local (possibly optimistic) and remote (canonical) order state.
"""
from typing import Any, Iterable

from pydantic import ValidationError

from pocketshop.domain.models import Order


def reconcile_order(local: Order, remote: Order, transient_fields: Iterable[str] = ()) -> Order:
    """
    Decide which representation of the same order is authoritative.

    - remote.version > local.version -> remote wins outright (returned as is)
    - otherwise -> a copy of remote; only the names listed in
      `transient_fields` are carried over from local (client-only UI flags)

    Equal versions with divergent values are not detected: remote is trusted.
    """
    if local.id != remote.id:
        raise ValueError(f"Cannot reconcile different orders: {local.id!r} vs {remote.id!r}")

    if remote.version > local.version:
        return remote

    carried = {name: getattr(local, name) for name in transient_fields}
    return remote.model_copy(update=carried, deep=True)


def extract_error_message(err: Any) -> str:
    """Human readable text for whatever a repository raised."""
    if err is None:
        return "Unknown error"

    if isinstance(err, ValidationError):
        return f"Invalid data: {err.error_count()} validation error(s)"

    if isinstance(err, BaseException):
        return str(err) or err.__class__.__name__

    if isinstance(err, str):
        return err

    if isinstance(err, dict):
        if err.get("message"):
            return str(err["message"])
        if err.get("error"):
            return str(err["error"])

    return "Server error"
