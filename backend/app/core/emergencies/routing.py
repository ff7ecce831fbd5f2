import enum
from typing import NamedTuple

from app.core.emergencies.errors import InvalidIncidentType
from app.core.users.models import AccountRole


class IncidentType(str, enum.Enum):
    HUMAN = "Human"
    ANIMAL = "Animal"
    PHYSICAL = "Physical"
    UNETHICAL = "Unethical"
    EQUIPMENT = "Equipment"
    NATURAL_DISASTER = "Natural Disaster"


class ResponderRole(str, enum.Enum):
    VETERINARIAN = "Veterinarian"
    EMERGENCY_OFFICER = "Emergency Officer"
    WILDLIFE_OFFICER = "Wildlife Officer"


class Route(NamedTuple):
    category: str
    eligible_roles: tuple[ResponderRole, ...]


ROUTES: dict[IncidentType, Route] = {
    IncidentType.HUMAN: Route("Medical Emergency", (ResponderRole.EMERGENCY_OFFICER,)),
    IncidentType.ANIMAL: Route("Injured Animal", (ResponderRole.VETERINARIAN, ResponderRole.WILDLIFE_OFFICER)),
    IncidentType.UNETHICAL: Route("Poaching", (ResponderRole.WILDLIFE_OFFICER, ResponderRole.VETERINARIAN)),
    # Fire reports are often handled on the spot through the forms flow
    IncidentType.PHYSICAL: Route("Fire", (ResponderRole.EMERGENCY_OFFICER,)),
    IncidentType.EQUIPMENT: Route("Equipment Failure", (ResponderRole.WILDLIFE_OFFICER,)),
    IncidentType.NATURAL_DISASTER: Route("Storm", (ResponderRole.WILDLIFE_OFFICER,)),
}

# userModel values accepted by the assign endpoint
USER_MODEL_ROLES: dict[str, ResponderRole] = {
    "Vet": ResponderRole.VETERINARIAN,
    "EmergencyOfficer": ResponderRole.EMERGENCY_OFFICER,
    "WildlifeOfficer": ResponderRole.WILDLIFE_OFFICER,
}

RESPONDER_ACCOUNT_ROLES: dict[ResponderRole, AccountRole] = {
    ResponderRole.VETERINARIAN: AccountRole.VET,
    ResponderRole.EMERGENCY_OFFICER: AccountRole.EMERGENCY_OFFICER,
    ResponderRole.WILDLIFE_OFFICER: AccountRole.WILDLIFE_OFFICER,
}
ACCOUNT_RESPONDER_ROLES = {v: k for k, v in RESPONDER_ACCOUNT_ROLES.items()}


def parse_incident_type(value: str) -> IncidentType:
    try:
        return IncidentType(value)
    except ValueError:
        raise InvalidIncidentType(errors={"validTypes": [t.value for t in IncidentType]})


def route(incident_type: IncidentType) -> Route:
    return ROUTES[incident_type]


def is_eligible(incident_type: IncidentType, role: ResponderRole) -> bool:
    return role in ROUTES[incident_type].eligible_roles


def responder_role_for_account(role: str) -> ResponderRole | None:
    try:
        return ACCOUNT_RESPONDER_ROLES.get(AccountRole(role))
    except ValueError:
        return None
