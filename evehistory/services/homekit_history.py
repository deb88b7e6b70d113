"""
HomeKit accessory history with Eve app support

HomeKitHistory belongs to one HAP-python accessory. Device drivers call
add_history() whenever a service changes state; the values kept depend on
the kind of service. One service of the accessory can then be linked to the
Eve app with link_to_eve_home(), which adds the Eve history service and the
product specific characteristics, and keeps the profile settings (schedules,
firmware, test state) the Eve app reads and writes.

Usage:
    history = HomeKitHistory(accessory)
    history.link_to_eve_home(thermostat_service, settings={"tempoffset": -1.5},
                             set_command=apply_thermostat_settings)
    history.add_history(thermostat_service, {"status": 2, "temperature": 20.5,
                                             "target": {"low": 0, "high": 21}, "humidity": 45})
"""
import asyncio
import logging
import time
from typing import Any, Callable, Dict, List, Optional

from pydantic import BaseModel
from pyhap.loader import get_loader

from evehistory.core.config import settings as app_settings
from evehistory.core.logging_config import accessory_context
from evehistory.core.metrics import update_eve_linked_accessories
from evehistory.services.eve_characteristics import (
    EVE_HISTORY_SERVICE,
    create_eve_service,
    ensure_characteristics,
    find_characteristic,
)
from evehistory.services.eve_diagnostics import get_diagnostic_handler
from evehistory.services.eve_profiles import EveContext, EveProfile, profile_for_service
from evehistory.services.eve_session import EveHistoryStream, EveHomeSession
from evehistory.services.history_storage import DatabaseHistoryStorage, HistoryStorage
from evehistory.services.history_store import (
    DEFAULT_SUBTYPE,
    HistoryStore,
    history_subtype_of,
    history_type_of,
)

logger = logging.getLogger(__name__)

_MISSING = object()

# Service display name -> (recorded fields with defaults, always subtype 0)
HISTORY_FIELDS: Dict[str, tuple] = {
    "GarageDoorOpener": ({"status": _MISSING}, False),
    "MotionSensor": ({"status": _MISSING}, False),
    "Doorbell": ({"status": _MISSING}, False),
    "SmokeSensor": ({"status": _MISSING}, False),
    "ContactSensor": ({"status": _MISSING}, False),
    "Door": ({"status": _MISSING, "position": _MISSING}, False),
    "Window": ({"status": _MISSING, "position": _MISSING}, False),
    "WindowCovering": ({"status": _MISSING, "position": _MISSING}, False),
    "Thermostat": ({"status": _MISSING, "temperature": _MISSING, "target": _MISSING,
                    "humidity": _MISSING}, False),
    "HeaterCooler": ({"status": _MISSING, "temperature": _MISSING, "target": _MISSING,
                      "humidity": _MISSING}, False),
    "TemperatureSensor": ({"temperature": _MISSING, "humidity": 0, "ppm": 0, "voc": 0,
                           "pressure": 0}, False),
    "AirQualitySensor": ({"temperature": _MISSING, "humidity": 0, "ppm": 0, "voc": 0,
                          "pressure": 0}, False),
    "EveAirPressureSensor": ({"temperature": _MISSING, "humidity": 0, "ppm": 0, "voc": 0,
                              "pressure": 0}, False),
    "Valve": ({"status": _MISSING, "water": _MISSING, "duration": _MISSING}, False),
    "WaterLevel": ({"level": _MISSING}, True),
    "LeakSensor": ({"status": _MISSING}, True),
    "Outlet": ({"status": _MISSING, "volts": _MISSING, "watts": _MISSING, "amps": _MISSING}, False),
}


def _now() -> int:
    return int(time.time())


class HomeKitHistory:
    """
    History store and Eve app link of one accessory.

    Args:
        accessory: HAP-python accessory the history belongs to
        storage: Storage backend, the database when omitted
        storage_key: Key of the persisted document, derived from the accessory name when omitted
        max_entries: Ring buffer capacity, HISTORY_MAX_ENTRIES setting when omitted
        clock: Returns the current unix time
    """

    def __init__(
        self,
        accessory: Any,
        storage: Optional[HistoryStorage] = None,
        storage_key: Optional[str] = None,
        max_entries: Optional[int] = None,
        clock: Callable[[], int] = _now,
    ):
        self.accessory = accessory
        self.accessory_id = str(getattr(accessory, "display_name", accessory))
        self._clock = clock

        if storage is None:
            from evehistory.core.database import init_db
            init_db()
            storage = DatabaseHistoryStorage()

        self.store = HistoryStore(
            storage,
            storage_key or f"History.{self.accessory_id}.json",
            app_settings.HISTORY_MAX_ENTRIES if max_entries is None else max_entries,
            clock,
        )

        # First entry after startup is marked so the time gap never drops it
        self._restart: Optional[int] = clock()

        self.eve_profile: Optional[EveProfile] = None
        self.eve_session: Optional[EveHomeSession] = None
        self.eve_stream: Optional[EveHistoryStream] = None
        self.eve_settings: Optional[BaseModel] = None
        self.eve_service = None
        self.linked_service = None
        self._get_command: Optional[Callable] = None
        self._set_command: Optional[Callable[[Dict[str, Any]], Any]] = None
        self._reset_task: Optional[asyncio.Task] = None

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------

    def add_history(self, service: Any, entry: Dict[str, Any], timegap: float = 0) -> bool:
        """
        Record the state of a service.

        Args:
            service: HAP service (or characteristic) the entry belongs to
            entry: Values to record, `time` defaults to now
            timegap: Minimum seconds between entries of this service

        Returns:
            True if stored, False if skipped (unknown service kind or too soon)
        """
        name = getattr(service, "display_name", None)
        recorded = HISTORY_FIELDS.get(name)
        if recorded is None:
            logger.debug(
                f"No history kept for service {name}",
                extra={"accessory_id": self.accessory_id}
            )
            return False

        fields = recorded[0]
        record = {}
        for key, default in fields.items():
            value = entry.get(key, default)
            if value is not _MISSING:
                record[key] = value

        if "restart" in entry:
            record["restart"] = entry["restart"]
        elif self._restart is not None:
            record["restart"] = self._restart

        stored = self.store.add_entry(
            history_type_of(service),
            self._subtype_of(service),
            entry.get("time"),
            timegap,
            record,
        )
        if stored and "restart" in record:
            self._restart = None
        return stored

    def get_history(self, service: Any, subtype: Any = DEFAULT_SUBTYPE,
                    field_filter: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        return self.store.get_history(service, self._resolve_subtype(service, subtype), field_filter)

    def last_history(self, service: Any, subtype: Any = DEFAULT_SUBTYPE) -> Optional[Dict[str, Any]]:
        return self.store.last_history(service, self._resolve_subtype(service, subtype))

    def entry_count(self, service: Any, subtype: Any = DEFAULT_SUBTYPE,
                    field_filter: Optional[Dict[str, Any]] = None) -> int:
        return self.store.entry_count(service, self._resolve_subtype(service, subtype), field_filter)

    def reset_history(self) -> None:
        self.store.reset_history()

    def export_csv(self, service: Any, path: str) -> int:
        return self.store.export_csv(service, path)

    def _subtype_of(self, service: Any) -> Any:
        """Subtype entries of this service are recorded under."""
        recorded = HISTORY_FIELDS.get(getattr(service, "display_name", None))
        if recorded is not None and recorded[1]:
            return 0
        return history_subtype_of(service)

    def _resolve_subtype(self, service: Any, subtype: Any) -> Any:
        if subtype is DEFAULT_SUBTYPE and not isinstance(service, str):
            return self._subtype_of(service)
        return subtype

    # ------------------------------------------------------------------
    # Eve app link
    # ------------------------------------------------------------------

    def link_to_eve_home(
        self,
        service: Any,
        settings: Optional[Any] = None,
        get_command: Optional[Callable] = None,
        set_command: Optional[Callable[[Dict[str, Any]], Any]] = None,
    ):
        """
        Expose a service's history to the Eve app.

        Args:
            service: Linked HAP service; its kind selects the Eve profile
            settings: Initial profile settings (dict or the profile's model)
            get_command: Called with the current settings before dynamic
                values are built, may return updated settings
            set_command: Receives the values changed by the Eve app

        Returns:
            The Eve history service, or None if this accessory is already
            linked or the service kind has no Eve counterpart
        """
        with accessory_context(self.accessory_id):
            if self.eve_session is not None:
                logger.debug(
                    f"Accessory already linked to Eve as {self.eve_session.evetype}",
                    extra={"diagnostic_category": "lifecycle", "evetype": self.eve_session.evetype}
                )
                return None

            profile = profile_for_service(service)
            if profile is None:
                logger.debug(
                    f"No Eve profile for service {getattr(service, 'display_name', service)}",
                    extra={"diagnostic_category": "lifecycle"}
                )
                return None

            if app_settings.EVE_DIAGNOSTIC_LOG_SIZE > 0:
                get_diagnostic_handler(app_settings.EVE_DIAGNOSTIC_LOG_SIZE)

            type_id = history_type_of(service)
            sub = self._subtype_of(service)
            if getattr(service, "display_name", None) == "IrrigationSystem":
                # Irrigation history is the sum of all its valves
                type_id = history_type_of(get_loader().get_service("Valve"))
                sub = None

            history_service = self.accessory.get_service(EVE_HISTORY_SERVICE)
            if history_service is None:
                history_service = create_eve_service(EVE_HISTORY_SERVICE)
                self.accessory.add_service(history_service)
            ensure_characteristics(service, profile.characteristics)

            if profile.settings_model is not None:
                if isinstance(settings, profile.settings_model):
                    self.eve_settings = settings
                else:
                    self.eve_settings = profile.settings_model.model_validate(settings or {})

            self.eve_profile = profile
            self.eve_session = EveHomeSession(type=type_id, sub=sub, evetype=profile.evetype,
                                              fields=profile.fields)
            self.eve_stream = EveHistoryStream(self.store, self.eve_session, profile.format_entry, self._clock)
            self.eve_service = history_service
            self.linked_service = service
            self._get_command = get_command
            self._set_command = set_command

            self._bind_history_service(history_service)
            self._bind_profile(service, profile)

            update_eve_linked_accessories(1)
            logger.info(
                f"Linked {getattr(service, 'display_name', service)} to Eve as {profile.evetype}",
                extra={"diagnostic_category": "lifecycle", "evetype": profile.evetype,
                       "count": self.eve_session.count}
            )
            return history_service

    def update_eve_home(self, service: Any, get_command: Callable) -> bool:
        """
        Push fresh dynamic values (configuration, readings) to the Eve app.

        Returns:
            False when not linked or no get_command was given
        """
        if self.eve_session is None or not callable(get_command):
            return False

        with accessory_context(self.accessory_id):
            chars = [(name, find_characteristic(service, name)) for name in self.eve_profile.refresh]
            chars = [(name, char) for name, char in chars if char is not None]
            if not chars:
                return True
            self._refresh_settings(get_command)
            context = self._context()
            for name, char in chars:
                char.set_value(self.eve_profile.getters[name](context))
        return True

    # ------------------------------------------------------------------
    # Characteristic wiring
    # ------------------------------------------------------------------

    def _context(self) -> EveContext:
        return EveContext(
            service=self.linked_service,
            session=self.eve_session,
            store=self.store,
            stream=self.eve_stream,
            settings=self.eve_settings,
            clock=self._clock,
            schedule_reset=self._start_reset_timer,
        )

    def _refresh_settings(self, get_command: Optional[Callable]) -> None:
        if get_command is None or self.eve_settings is None:
            return
        updated = get_command(self.eve_settings)
        if updated is None:
            return
        if isinstance(updated, BaseModel):
            self.eve_settings = updated
        else:
            self.eve_settings = self.eve_profile.settings_model.model_validate(updated)

    def _bind_history_service(self, history_service: Any) -> None:
        stream = self.eve_stream

        def bind(name: str, getter=None, setter=None) -> None:
            char = find_characteristic(history_service, name)
            if getter is not None:
                char.getter_callback = self._in_context(getter)
            if setter is not None:
                char.setter_callback = self._in_context(setter)

        bind("EveResetTotal", getter=stream.reset_total)
        bind("EveHistoryStatus", getter=stream.status)
        bind("EveHistoryEntries", getter=stream.entries)
        bind("EveHistoryRequest", setter=stream.request)
        bind("EveSetTime", setter=stream.set_time)

    def _bind_profile(self, service: Any, profile: EveProfile) -> None:
        for name, getter in profile.getters.items():
            char = find_characteristic(service, name)
            if char is None:
                continue
            callback = self._getter(name, getter)
            char.set_value(callback(), should_notify=False)
            char.getter_callback = callback

        for name, setter in profile.setters.items():
            char = find_characteristic(service, name)
            if char is not None:
                char.setter_callback = self._setter(setter)

    def _in_context(self, func: Callable) -> Callable:
        def callback(*args):
            with accessory_context(self.accessory_id):
                return func(*args)
        return callback

    def _getter(self, name: str, getter: Callable[[EveContext], Any]) -> Callable[[], Any]:
        def callback():
            with accessory_context(self.accessory_id):
                if name in self.eve_profile.refresh:
                    self._refresh_settings(self._get_command)
                return getter(self._context())
        return callback

    def _setter(self, setter: Callable[[EveContext, Any], Dict[str, Any]]) -> Callable[[Any], None]:
        def callback(value):
            with accessory_context(self.accessory_id):
                processed = setter(self._context(), value)
                if processed and self._set_command is not None:
                    self._set_command(processed)
        return callback

    # ------------------------------------------------------------------
    # Leak test reset timer
    # ------------------------------------------------------------------

    def _start_reset_timer(self, callback: Callable[[], None]) -> None:
        """Run callback once after the leak test duration, replacing a pending one."""
        if self._reset_task is not None and not self._reset_task.done():
            self._reset_task.cancel()
        try:
            loop = asyncio.get_running_loop()
            self._reset_task = loop.create_task(
                self._reset_coroutine(callback),
                name=f"eve_leak_test_reset_{self.accessory_id}"
            )
        except RuntimeError:
            # No event loop running, log and skip timer
            logger.debug(
                f"Could not start leak test reset timer for {self.accessory_id} - no running event loop",
                extra={"accessory_id": self.accessory_id}
            )

    async def _reset_coroutine(self, callback: Callable[[], None]) -> None:
        try:
            await asyncio.sleep(app_settings.EVE_LEAK_TEST_RESET_SECONDS)
            with accessory_context(self.accessory_id):
                callback()
                logger.debug(
                    f"Eve leak test reset after {app_settings.EVE_LEAK_TEST_RESET_SECONDS}s",
                    extra={"diagnostic_category": "config"}
                )
        except asyncio.CancelledError:
            # Timer was replaced by a newer test
            pass
        finally:
            if self._reset_task is asyncio.current_task():
                self._reset_task = None