# Author: PB & Claude
# Maintainer: PB
# Original date: 2026.10.05
# License: (c) HRDAG, 2025, GPL-2 or newer
#
# ------
# src/volbak/core/admission.py

"""Decide whether a restore may write into its target volume."""

from enum import Enum

from loguru import logger

from volbak.storage.protocols import VolumeStore
from volbak.system.exceptions import PreconditionError


class AdmissionState(Enum):
    ABSENT = "absent"
    PRESENT_NO_OVERWRITE = "present-no-overwrite"
    PRESENT_OVERWRITE = "present-overwrite"


def decide_admission(exists: bool, overwrite: bool) -> AdmissionState:
    if not exists:
        return AdmissionState.ABSENT
    if overwrite:
        return AdmissionState.PRESENT_OVERWRITE
    return AdmissionState.PRESENT_NO_OVERWRITE


def admit_restore(store: VolumeStore, volume: str, overwrite: bool) -> AdmissionState:
    """Prepare the target volume for a restore, or refuse.

    Evaluated once, before any stream is opened. An existing volume is only
    written to after it has been cleared completely; clear() raises if
    anything survives, so old and new content never coexist.

    Raises:
        PreconditionError: If the volume exists and overwrite is False
    """
    state = decide_admission(store.exists(volume), overwrite)

    if state is AdmissionState.PRESENT_NO_OVERWRITE:
        raise PreconditionError(
            f"volume '{volume}' already exists. Use --overwrite flag to clear and restore, "
            f"or delete the volume first",
            volume=volume,
        )

    if state is AdmissionState.PRESENT_OVERWRITE:
        logger.info(f"Clearing volume '{volume}' before restore")
        store.clear(volume)
    else:
        logger.info(f"Creating volume '{volume}'")
        store.ensure_exists(volume)

    return state
