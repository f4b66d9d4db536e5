"""Client helpers for building mixer transactions."""

from zkpool.client.mixer_client import (
    MixerAddresses,
    build_initialize_transaction,
    build_push_root_transaction,
    build_transfer_transaction,
    build_withdraw_transaction,
    get_latest_root,
    get_mixer_addresses,
)

__all__ = [
    "MixerAddresses",
    "build_initialize_transaction",
    "build_push_root_transaction",
    "build_transfer_transaction",
    "build_withdraw_transaction",
    "get_latest_root",
    "get_mixer_addresses",
]
