"""
Map already-fetched biometer payloads onto BiometryInput.

Communication with the instruments belongs to the caller's device layer (see
iolcalc.ports.BiometrySource); this module only reshapes the data.
"""

from typing import Any, Dict

from ..errors import UnsupportedDevice
from ..models.schema import BiometryInput

SUPPORTED_DEVICES = ("iol_master_700", "lenstar_ls900", "pentacam_axi")


def _iol_master_700(payload: Dict[str, Any]) -> Dict[str, Any]:
    fields = {
        "axial_length": payload["biometry"]["axial_length"],
        "k1": payload["keratometry"]["k1"],
        "k2": payload["keratometry"]["k2"],
    }
    optional = {
        "anterior_chamber_depth": ("anterior_chamber", "depth"),
        "lens_thickness": ("lens", "thickness"),
        "white_to_white": ("cornea", "diameter"),
        "pupil_size": ("pupil", "diameter"),
    }
    for name, (section, key) in optional.items():
        value = payload.get(section, {}).get(key)
        if value is not None:
            fields[name] = value
    return fields


def _flat(payload: Dict[str, Any]) -> Dict[str, Any]:
    aliases = {
        "axial_length": ("axial_length", "al"),
        "k1": ("k1",),
        "k2": ("k2",),
        "anterior_chamber_depth": ("acd", "anterior_chamber_depth"),
        "lens_thickness": ("lens_thickness", "lt"),
        "white_to_white": ("white_to_white", "wtw"),
        "pupil_size": ("pupil_diameter", "pupil_size"),
    }
    fields = {}
    for name, keys in aliases.items():
        for key in keys:
            if payload.get(key) is not None:
                fields[name] = payload[key]
                break
    return fields


def biometry_from_device_payload(device_type: str, payload: Dict[str, Any], **overrides) -> BiometryInput:
    """
    Build a BiometryInput from a device payload.

    `overrides` (e.g. lens_constant, target_refraction) are applied on top of
    the measured values. Missing required measurements raise KeyError for the
    nested IOLMaster format and pydantic's ValidationError for flat payloads.
    """
    if device_type == "iol_master_700":
        fields = _iol_master_700(payload)
    elif device_type in SUPPORTED_DEVICES:
        fields = _flat(payload)
    else:
        raise UnsupportedDevice(device_type)
    fields.update(overrides)
    return BiometryInput(**fields)
