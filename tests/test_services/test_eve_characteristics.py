"""
Tests for the Eve HAP characteristic and service definitions

Tests cover:
- Eve UUID construction
- Permissions of the history characteristics
- Fallback to HAP-python's standard characteristics
- Characteristics added to an already published service
"""
import uuid

from pyhap.const import (
    HAP_PERMISSION_HIDDEN,
    HAP_PERMISSION_NOTIFY,
    HAP_PERMISSION_READ,
    HAP_PERMISSION_WRITE,
)

from evehistory.services.eve_characteristics import (
    EVE_HISTORY_SERVICE,
    create_characteristic,
    create_eve_characteristic,
    create_eve_service,
    ensure_characteristics,
    eve_uuid,
    find_characteristic,
)


class TestEveDefinitions:
    """Characteristic and service construction"""

    def test_eve_uuid(self):
        assert eve_uuid("F007") == uuid.UUID("E863F007-079E-48FF-8F27-9C2605A29F52")

    def test_history_service(self):
        service = create_eve_service(EVE_HISTORY_SERVICE)

        assert service.type_id == eve_uuid("F007")
        assert [char.display_name for char in service.characteristics] == [
            "EveResetTotal", "EveHistoryStatus", "EveHistoryEntries", "EveHistoryRequest", "EveSetTime",
        ]

    def test_history_permissions(self):
        request = create_eve_characteristic("EveHistoryRequest")
        status = create_eve_characteristic("EveHistoryStatus")
        reset_total = create_eve_characteristic("EveResetTotal")

        assert request.properties["Permissions"] == [HAP_PERMISSION_WRITE, HAP_PERMISSION_HIDDEN]
        assert status.properties["Permissions"] == [
            HAP_PERMISSION_READ, HAP_PERMISSION_NOTIFY, HAP_PERMISSION_HIDDEN,
        ]
        assert HAP_PERMISSION_WRITE in reset_total.properties["Permissions"]

    def test_permissions_not_shared_between_instances(self):
        first = create_eve_characteristic("EveSetTime")
        second = create_eve_characteristic("EveSetTime")

        first.properties["Permissions"].append(HAP_PERMISSION_READ)

        assert HAP_PERMISSION_READ not in second.properties["Permissions"]

    def test_standard_characteristic_from_loader(self):
        char = create_characteristic("LeakDetected")

        assert char.display_name == "LeakDetected"


class TestEnsureCharacteristics:
    """Tests for ensure_characteristics()"""

    def test_existing_characteristic_reused(self, accessory):
        leak = accessory.add_preload_service("LeakSensor")
        existing = find_characteristic(leak, "LeakDetected")

        chars = ensure_characteristics(leak, ["LeakDetected", "EveSetConfiguration"])

        assert chars[0] is existing
        assert find_characteristic(leak, "EveSetConfiguration") is chars[1]

    def test_published_service_assigns_instance_ids(self, accessory):
        motion = accessory.add_preload_service("MotionSensor")

        sensitivity, = ensure_characteristics(motion, ["EveSensitivity"])

        assert sensitivity.broker is accessory
        assert accessory.iid_manager.get_iid(sensitivity) is not None
