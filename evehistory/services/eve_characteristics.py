"""
Eve custom HAP characteristics and services

Elgato's Eve app reads history and configuration through vendor specific
characteristics (UUIDs E863F1xx-079E-48FF-8F27-9C2605A29F52) attached to the
accessory's own service and to a dedicated history service. Standard HAP
characteristics needed alongside them come from HAP-python's loader.
"""
import logging
import uuid
from typing import Iterable, List, Optional

from pyhap.characteristic import (
    Characteristic,
    HAP_FORMAT_DATA,
    HAP_FORMAT_FLOAT,
    HAP_FORMAT_UINT8,
    HAP_FORMAT_UINT16,
    HAP_FORMAT_UINT32,
    PROP_FORMAT,
    PROP_MAX_VALUE,
    PROP_MIN_VALUE,
    PROP_PERMISSIONS,
    PROP_VALID_VALUES,
)
from pyhap.const import (
    HAP_PERMISSION_HIDDEN,
    HAP_PERMISSION_NOTIFY,
    HAP_PERMISSION_READ,
    HAP_PERMISSION_WRITE,
)
from pyhap.loader import get_loader
from pyhap.service import Service

logger = logging.getLogger(__name__)

EVE_UUID_SUFFIX = "-079E-48FF-8F27-9C2605A29F52"


def eve_uuid(code: str) -> uuid.UUID:
    """Full UUID of an Eve characteristic or service from its 4 digit code."""
    return uuid.UUID(f"E863{code}{EVE_UUID_SUFFIX}")


READ_NOTIFY = [HAP_PERMISSION_READ, HAP_PERMISSION_NOTIFY]
READ_WRITE_NOTIFY = [HAP_PERMISSION_READ, HAP_PERMISSION_WRITE, HAP_PERMISSION_NOTIFY]
HIDDEN_WRITE = [HAP_PERMISSION_WRITE, HAP_PERMISSION_HIDDEN]
HIDDEN_READ = [HAP_PERMISSION_READ, HAP_PERMISSION_NOTIFY, HAP_PERMISSION_HIDDEN]

# display name -> (UUID code, properties)
EVE_CHARACTERISTICS = {
    # History service
    "EveResetTotal": ("F112", {PROP_FORMAT: HAP_FORMAT_UINT32, PROP_PERMISSIONS: READ_WRITE_NOTIFY}),
    "EveHistoryStatus": ("F116", {PROP_FORMAT: HAP_FORMAT_DATA, PROP_PERMISSIONS: HIDDEN_READ}),
    "EveHistoryEntries": ("F117", {PROP_FORMAT: HAP_FORMAT_DATA, PROP_PERMISSIONS: HIDDEN_READ}),
    "EveHistoryRequest": ("F11C", {PROP_FORMAT: HAP_FORMAT_DATA, PROP_PERMISSIONS: HIDDEN_WRITE}),
    "EveSetTime": ("F121", {PROP_FORMAT: HAP_FORMAT_DATA, PROP_PERMISSIONS: HIDDEN_WRITE}),
    # Configuration
    "EveGetConfiguration": ("F131", {PROP_FORMAT: HAP_FORMAT_DATA, PROP_PERMISSIONS: [HAP_PERMISSION_READ]}),
    "EveSetConfiguration": ("F11D", {PROP_FORMAT: HAP_FORMAT_DATA, PROP_PERMISSIONS: HIDDEN_WRITE}),
    "EveFirmware": ("F11E", {PROP_FORMAT: HAP_FORMAT_DATA, PROP_PERMISSIONS: READ_WRITE_NOTIFY}),
    "EveProgramCommand": ("F12C", {PROP_FORMAT: HAP_FORMAT_DATA, PROP_PERMISSIONS: HIDDEN_WRITE}),
    "EveProgramData": ("F12F", {PROP_FORMAT: HAP_FORMAT_DATA, PROP_PERMISSIONS: READ_NOTIFY}),
    "EveDeviceStatus": ("F134", {PROP_FORMAT: HAP_FORMAT_UINT32, PROP_PERMISSIONS: READ_NOTIFY}),
    # Thermostat
    "EveValvePosition": ("F12E", {PROP_FORMAT: HAP_FORMAT_UINT8, PROP_PERMISSIONS: READ_NOTIFY,
                                  PROP_MIN_VALUE: 0, PROP_MAX_VALUE: 100}),
    # Door / window
    "EveLastActivation": ("F11A", {PROP_FORMAT: HAP_FORMAT_UINT32, PROP_PERMISSIONS: READ_NOTIFY}),
    "EveTimesOpened": ("F129", {PROP_FORMAT: HAP_FORMAT_UINT32, PROP_PERMISSIONS: READ_NOTIFY}),
    "EveClosedDuration": ("F118", {PROP_FORMAT: HAP_FORMAT_UINT32, PROP_PERMISSIONS: READ_NOTIFY}),
    "EveOpenDuration": ("F119", {PROP_FORMAT: HAP_FORMAT_UINT32, PROP_PERMISSIONS: READ_NOTIFY}),
    # Energy
    "EveElectricalVoltage": ("F10A", {PROP_FORMAT: HAP_FORMAT_FLOAT, PROP_PERMISSIONS: READ_NOTIFY,
                                      PROP_MIN_VALUE: 0, PROP_MAX_VALUE: 1000}),
    "EveElectricalCurrent": ("F126", {PROP_FORMAT: HAP_FORMAT_FLOAT, PROP_PERMISSIONS: READ_NOTIFY,
                                      PROP_MIN_VALUE: 0, PROP_MAX_VALUE: 1000}),
    "EveTotalConsumption": ("F10C", {PROP_FORMAT: HAP_FORMAT_FLOAT, PROP_PERMISSIONS: READ_NOTIFY,
                                     PROP_MIN_VALUE: 0, PROP_MAX_VALUE: 1000000000}),
    "EveElectricalWattage": ("F10D", {PROP_FORMAT: HAP_FORMAT_FLOAT, PROP_PERMISSIONS: READ_NOTIFY,
                                      PROP_MIN_VALUE: 0, PROP_MAX_VALUE: 1000000000}),
    # Motion
    "EveSensitivity": ("F120", {PROP_FORMAT: HAP_FORMAT_UINT8, PROP_PERMISSIONS: READ_WRITE_NOTIFY,
                                PROP_VALID_VALUES: {"High": 0, "Medium": 4, "Low": 7}}),
    "EveDuration": ("F12D", {PROP_FORMAT: HAP_FORMAT_UINT16, PROP_PERMISSIONS: READ_WRITE_NOTIFY,
                             PROP_MIN_VALUE: 5, PROP_MAX_VALUE: 54000}),
    # Weather
    "EveAirPressure": ("F10F", {PROP_FORMAT: HAP_FORMAT_UINT16, PROP_PERMISSIONS: READ_NOTIFY,
                                PROP_MIN_VALUE: 700, PROP_MAX_VALUE: 1100}),
    "EveElevation": ("F130", {PROP_FORMAT: HAP_FORMAT_UINT16, PROP_PERMISSIONS: READ_WRITE_NOTIFY,
                              PROP_MIN_VALUE: 0, PROP_MAX_VALUE: 9000}),
}

EVE_HISTORY_SERVICE = "EveHomeHistory"
EVE_AIR_PRESSURE_SERVICE = "EveAirPressureSensor"

EVE_SERVICES = {
    EVE_HISTORY_SERVICE: ("F007", ["EveResetTotal", "EveHistoryStatus", "EveHistoryEntries",
                                   "EveHistoryRequest", "EveSetTime"]),
    EVE_AIR_PRESSURE_SERVICE: ("F00A", ["EveAirPressure", "EveElevation"]),
}


def create_eve_characteristic(name: str) -> Characteristic:
    """Create a fresh Eve characteristic by display name."""
    code, properties = EVE_CHARACTERISTICS[name]
    props = dict(properties)
    props[PROP_PERMISSIONS] = list(props[PROP_PERMISSIONS])
    return Characteristic(name, eve_uuid(code), props)


def create_characteristic(name: str) -> Characteristic:
    """Eve characteristic by name, or a standard one from HAP-python's loader."""
    if name in EVE_CHARACTERISTICS:
        return create_eve_characteristic(name)
    return get_loader().get_char(name)


def create_eve_service(name: str) -> Service:
    """Create an Eve service with its characteristics."""
    code, chars = EVE_SERVICES[name]
    service = Service(eve_uuid(code), name)
    service.add_characteristic(*(create_eve_characteristic(char) for char in chars))
    return service


def find_characteristic(service: Service, name: str) -> Optional[Characteristic]:
    """Characteristic of a service by display name, None when absent."""
    for char in service.characteristics:
        if char.display_name == name:
            return char
    return None


def ensure_characteristics(service: Service, names: Iterable[str]) -> List[Characteristic]:
    """
    Add missing characteristics to a service, returning all requested ones.

    When the service is already published on an accessory the new
    characteristics are registered with it so they get instance ids.
    """
    result = []
    added = []
    for name in names:
        char = find_characteristic(service, name)
        if char is None:
            char = create_characteristic(name)
            service.add_characteristic(char)
            added.append(char)
        result.append(char)

    broker = getattr(service, "broker", None)
    if broker is not None and added:
        for char in added:
            char.broker = broker
            broker.iid_manager.assign(char)
        logger.debug(
            f"Added {len(added)} characteristics to published service {service.display_name}",
            extra={"characteristics": [char.display_name for char in added]}
        )
    return result
