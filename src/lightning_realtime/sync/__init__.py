"""
Sync Module
===========

Session-level synchronization between local inputs and remote results.

This module provides:
    - RealtimeSession: Scoped wiring of everything below
    - InputStore: Prompt + seed, last-write-wins per field
    - InputSynchronizer: Inputs → RequestFrames → connection
    - ResultReceiver / DisplayStore: ResultFrames → DisplayState
    - ImageStore: Displayable image handles
    - SeedRotator: Periodic seed regeneration
    - random_seed: Seed generator
"""

from lightning_realtime.sync.images import ImageStore
from lightning_realtime.sync.inputs import InputStore
from lightning_realtime.sync.receiver import DisplayStore, ResultReceiver
from lightning_realtime.sync.rotator import SeedRotator
from lightning_realtime.sync.seed import SEED_UPPER_BOUND, parse_seed, random_seed
from lightning_realtime.sync.session import RealtimeSession
from lightning_realtime.sync.synchronizer import InputSynchronizer


__all__ = [
    "DisplayStore",
    "ImageStore",
    "InputStore",
    "InputSynchronizer",
    "RealtimeSession",
    "ResultReceiver",
    "SEED_UPPER_BOUND",
    "SeedRotator",
    "parse_seed",
    "random_seed",
]
