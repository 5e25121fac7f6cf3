"""Service catalog with fixed durations and descriptions."""

import logging
from typing import Optional

from vetbook.schemas.booking_schema import PetType

logger = logging.getLogger(__name__)

DEFAULT_SERVICE_ID = "checkup"

SERVICE_CATALOG: dict[str, dict] = {
    "checkup": {
        "name": "General Checkup",
        "description": "Routine wellness examination, weight check, and general health review.",
        "duration": 30,
    },
    "vaccination": {
        "name": "Vaccination",
        "description": "Core and lifestyle vaccines with a short pre-vaccination exam.",
        "duration": 30,
    },
    "grooming": {
        "name": "Grooming",
        "description": "Bath, brush, nail trim, and ear cleaning.",
        "duration": 60,
    },
    "dental": {
        "name": "Dental Care",
        "description": "Dental examination, scaling, and polishing.",
        "duration": 60,
    },
    "surgery": {
        "name": "Surgery Consultation",
        "description": "Pre-surgical assessment for spay, neuter, and soft-tissue procedures.",
        "duration": 60,
    },
    "consultation": {
        "name": "Consultation",
        "description": "Discuss a specific concern such as diet, behaviour, or a new symptom.",
        "duration": 30,
    },
    "emergency": {
        "name": "Urgent Care",
        "description": "Same-day assessment for injuries and sudden illness.",
        "duration": 30,
    },
}

def get_service_ids() -> list[str]:
    """Return all bookable service IDs in catalog order."""
    return list(SERVICE_CATALOG.keys())


def get_pet_types() -> list[str]:
    """Return the accepted pet type values."""
    return [pet.value for pet in PetType]


def get_all_services() -> list[dict]:
    """Return all services with basic info."""
    return [
        {"id": sid, "name": info["name"], "duration": info["duration"]}
        for sid, info in SERVICE_CATALOG.items()
    ]


def get_service_details(service_id: str) -> Optional[dict]:
    """Get full details for a known service ID."""
    info = SERVICE_CATALOG.get(service_id)
    if info is None:
        return None
    return {"id": service_id, **info}


def get_service_duration(service_id: Optional[str]) -> int:
    """Duration in minutes, falling back to the default service for unknown IDs."""
    info = SERVICE_CATALOG.get(service_id or DEFAULT_SERVICE_ID)
    if info is None:
        logger.debug("Unknown service '%s', using default duration", service_id)
        info = SERVICE_CATALOG[DEFAULT_SERVICE_ID]
    return info["duration"]
