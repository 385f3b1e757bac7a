"""
Appointment service for shared appointment business logic.

This module orchestrates the appointment lifecycle: it validates bookings,
applies lifecycle events computed by the state machine, executes their side
effect intents, coordinates recurring series and cascades status changes
across patient packages. Every operation is scoped by an explicit clinic id
and runs in the caller's session, committing once the change is complete.
"""

import logging
from datetime import datetime
from typing import Any, List, Optional, Sequence, Tuple

from sqlalchemy.orm import Session

from core.constants import (
    ERROR_CANNOT_CONFIRM,
    ERROR_INVALID_FREQUENCY,
    ERROR_INVALID_TIME_STRING,
    ERROR_NOT_FOUND,
    UPCOMING_APPOINTMENTS_FOR_PATIENT_LIMIT,
)
from core.exceptions import (
    AppointmentNotFound,
    AppointmentValidationError,
    FieldError,
    SchedulingError,
    StateGuardViolation,
)
from core.sentinels import MISSING, is_provided
from models import Appointment, AppointmentEventLog
from models.clinic import ClinicSettings, SchedulingSettings
from services.appointment_state_machine import (
    EffectKind,
    TransitionContext,
    TransitionResult,
    check_assisted_change,
    check_can_cancel,
    event_for_assisted_change,
    transition,
)
from services.financial_record_service import FinancialRecordService
from services.notification_service import NotificationService
from services.patient_package_service import PatientPackageService
from services.recurrence_service import get_recurrence_engine
from services.scheduling_validator import SchedulingValidator
from services.settings_service import SettingsService
from shared_types.scheduling import (
    AppointmentEvent,
    AppointmentState,
    Frequency,
    NotificationKind,
    SchedulingCandidate,
)
from utils import appointment_queries
from utils.datetime_utils import (
    beginning_of_day,
    clinic_now_naive,
    end_of_day,
    occupied_slot,
    parse_booking_time_string,
    to_clinic_naive,
)
from utils.soft_delete_queries import get_appointment_type, get_doctor, get_patient, get_patient_package

logger = logging.getLogger(__name__)

# A change to any of these notifies the patient
UPDATE_NOTIFICATION_FIELDS = ("start_time", "end_time", "doctor_id", "patient_id", "frequency")


class AppointmentService:
    """
    Service class for appointment operations.

    Contains business logic for appointments that is shared across
    different API endpoints and background jobs.
    """

    @staticmethod
    def get_appointment(
        db: Session,
        clinic_id: int,
        appointment_id: int,
        include_canceled: bool = True,
        for_update: bool = False
    ) -> Appointment:
        """
        Get an appointment of the clinic.

        Raises:
            AppointmentNotFound: If the appointment does not exist in the clinic
        """
        appointment = appointment_queries.get_appointment(
            db, clinic_id, appointment_id, include_canceled=include_canceled, for_update=for_update
        )
        if not appointment:
            raise AppointmentNotFound(appointment_id, clinic_id)
        return appointment

    @staticmethod
    def list_appointments(
        db: Session,
        clinic_id: int,
        doctor_id: Optional[int] = None,
        patient_id: Optional[int] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        include_canceled: bool = False,
        doctor_ids: Optional[Sequence[int]] = None,
        today: bool = False
    ) -> List[Appointment]:
        """
        List appointments of a clinic, ordered by start time.

        When both `start` and `end` are given, appointments touching that
        range are returned (starting in it, ending in it, or enclosing it).
        `today` replaces the range with the current clinic-local day, and
        `doctor_ids` shows several doctors' calendars side by side.
        """
        SettingsService.get_clinic(db, clinic_id)

        start, end = to_clinic_naive(start), to_clinic_naive(end)
        if today:
            now = clinic_now_naive()
            start, end = beginning_of_day(now), end_of_day(now)
        if start is not None and end is not None:
            query = appointment_queries.in_time_range(db, clinic_id, start, end, include_canceled)
        else:
            query = appointment_queries.appointments_for_clinic(db, clinic_id, include_canceled)
            if start is not None:
                query = query.filter(Appointment.start_time >= start)
            if end is not None:
                query = query.filter(Appointment.start_time <= end)

        if doctor_id is not None:
            query = query.filter(Appointment.doctor_id == doctor_id)
        if doctor_ids:
            query = query.filter(Appointment.doctor_id.in_(doctor_ids))
        if patient_id is not None:
            query = query.filter(Appointment.patient_id == patient_id)

        return query.order_by(Appointment.start_time.asc(), Appointment.id.asc()).all()

    @staticmethod
    def list_upcoming_for_patient(
        db: Session,
        clinic_id: int,
        patient_id: int,
        limit: int = UPCOMING_APPOINTMENTS_FOR_PATIENT_LIMIT
    ) -> List[Appointment]:
        """Next active appointments of a patient, soonest first."""
        SettingsService.get_clinic(db, clinic_id)
        return appointment_queries.upcoming_for_patient(db, clinic_id, patient_id, clinic_now_naive(), limit)

    @staticmethod
    def get_event_logs(db: Session, clinic_id: int, appointment_id: int) -> List[AppointmentEventLog]:
        appointment = AppointmentService.get_appointment(db, clinic_id, appointment_id)
        return (
            db.query(AppointmentEventLog)
            .filter(AppointmentEventLog.appointment_id == appointment.id)
            .order_by(AppointmentEventLog.id.asc())
            .all()
        )

    @staticmethod
    def create_appointment(
        db: Session,
        clinic_id: int,
        patient_id: Optional[int],
        doctor_id: Optional[int],
        appointment_type_id: Optional[int],
        start_time: Optional[datetime] = None,
        end_time: Optional[datetime] = None,
        time_string: Optional[str] = None,
        is_all_day: bool = False,
        assisted: bool = False,
        referencer_doctor_id: Optional[int] = None,
        patient_package_id: Optional[int] = None,
        frequency: Optional[str] = None,
        frequency_number: int = 1,
        description: Optional[str] = None,
        patient_validated: bool = False,
        patient_validate_failed: bool = False
    ) -> Appointment:
        """
        Book a new appointment.

        Args:
            db: Database session
            clinic_id: Clinic ID
            patient_id: Patient ID
            doctor_id: Doctor ID
            appointment_type_id: Appointment type ID
            start_time: Start time (naive values are clinic-local)
            end_time: End time
            time_string: Compact 'dd-mm-YYYY-H-MM' start; sets a default-length slot
            is_all_day: Book the whole day of start_time, checked and stored as 00:00-23:59
            assisted: Patient already confirmed assistance; the appointment starts confirmed
            referencer_doctor_id: Referring doctor, notified on completion
            patient_package_id: Package the appointment is consumed from
            frequency: Recurrence frequency ('monthly', 'weekly', 'biweekly', 'yearly')
            frequency_number: Recurrence multiplier
            description: Free-text description
            patient_validated: Patient identity already validated
            patient_validate_failed: Patient identity validation failed

        Returns:
            The persisted appointment (the root, for recurring bookings)

        Raises:
            ClinicNotFound: If clinic not found
            AppointmentValidationError: With every collected field error
        """
        clinic_settings = SettingsService.get_clinic_settings(db, clinic_id)
        scheduling = clinic_settings.scheduling_settings

        try:
            errors: List[FieldError] = []
            start_time, end_time = AppointmentService._resolve_times(start_time, end_time, time_string, errors)
            frequency_value = AppointmentService._parse_frequency(frequency, errors)

            SchedulingValidator.lock_doctor_calendar(db, clinic_id, doctor_id)

            candidate = SchedulingCandidate(
                clinic_id=clinic_id,
                doctor_id=doctor_id,
                patient_id=patient_id,
                appointment_type_id=appointment_type_id,
                start_time=start_time,
                end_time=end_time,
                is_all_day=is_all_day,
                frequency=frequency_value,
                frequency_number=frequency_number or 1,
                patient_validated=patient_validated,
                patient_validate_failed=patient_validate_failed,
            )
            engine = get_recurrence_engine(db, clinic_id, scheduling)

            errors.extend(AppointmentService._validate_references(
                db,
                clinic_id,
                patient_id=patient_id,
                doctor_id=doctor_id,
                appointment_type_id=appointment_type_id,
                referencer_doctor_id=referencer_doctor_id,
                patient_package_id=patient_package_id,
            ))
            errors.extend(SchedulingValidator.validate(
                db, candidate, scheduling, check_slot=True, recurrence_engine=engine
            ))
            if errors:
                logger.warning(
                    f"Rejected booking for doctor {doctor_id} in clinic {clinic_id}: "
                    f"{', '.join(f'{e.field} {e.code}' for e in errors)}"
                )
                raise AppointmentValidationError(errors)

            state = AppointmentState.JUST_CREATED
            if assisted:
                # Not persisted yet, so no event log entry
                state = transition(state, AppointmentEvent.CONFIRM).new_state

            appointment = Appointment(
                clinic_id=clinic_id,
                patient_id=patient_id,
                doctor_id=doctor_id,
                appointment_type_id=appointment_type_id,
                referencer_doctor_id=referencer_doctor_id,
                patient_package_id=patient_package_id,
                start_time=start_time,
                end_time=end_time,
                is_all_day=is_all_day,
                assisted=assisted,
                frequency=frequency_value.value if frequency_value else None,
                frequency_number=frequency_number or 1,
                description=description,
                patient_validated=patient_validated,
                patient_validate_failed=patient_validate_failed,
                state=state.value,
            )
            AppointmentService._normalize_all_day(appointment)
            db.add(appointment)
            db.flush()

            if assisted:
                PatientPackageService.propagate_assisted(db, appointment)

            if frequency_value is not None and engine is not None:
                engine.materialize(appointment)

            db.commit()

        except SchedulingError:
            db.rollback()
            raise
        except Exception as e:
            logger.exception(f"Failed to create appointment: {e}")
            db.rollback()
            raise

        logger.info(f"Created appointment {appointment.id} for patient {patient_id} in clinic {clinic_id}")

        if appointment.parent_id is None and clinic_settings.notification_settings.send_creation_notifications:
            NotificationService.dispatch(db, NotificationKind.APPOINTMENT_CREATED, appointment)

        return appointment

    @staticmethod
    def update_appointment(
        db: Session,
        clinic_id: int,
        appointment_id: int,
        patient_id: Any = MISSING,
        doctor_id: Any = MISSING,
        appointment_type_id: Any = MISSING,
        start_time: Any = MISSING,
        end_time: Any = MISSING,
        time_string: Any = MISSING,
        is_all_day: Any = MISSING,
        assisted: Any = MISSING,
        canceled: Any = MISSING,
        cancellation_reason: Any = MISSING,
        referencer_doctor_id: Any = MISSING,
        patient_package_id: Any = MISSING,
        frequency: Any = MISSING,
        frequency_number: Any = MISSING,
        description: Any = MISSING,
        patient_validated: Any = MISSING,
        patient_validate_failed: Any = MISSING,
        save_from_now_on: bool = False
    ) -> Appointment:
        """
        Update an appointment.

        Only the provided fields change. Switching flags fires the matching
        lifecycle events: assistance on/off fires confirm/reset_to_created
        (cascaded to the package), patient validation fires validate_patient
        or validate_patient_failed, and canceling cascades to the package.

        Recurrence follows the frequency: setting one on a single appointment
        materializes a series, clearing it removes the later members, and
        moving a series member with `save_from_now_on` moves every later
        member by the same amount. Without the flag only this appointment moves.

        Raises:
            AppointmentNotFound: If the appointment does not exist or is canceled
            StateGuardViolation: If a guarded flag can't change in the current state
            CannotCancel: If an in-progress appointment is canceled with state logging on
            AppointmentValidationError: With every collected field error
        """
        clinic_settings = SettingsService.get_clinic_settings(db, clinic_id)
        scheduling = clinic_settings.scheduling_settings
        appointment = AppointmentService.get_appointment(
            db, clinic_id, appointment_id, include_canceled=False, for_update=True
        )

        old_start, old_end = appointment.start_time, appointment.end_time
        old_values = {name: getattr(appointment, name) for name in UPDATE_NOTIFICATION_FIELDS}
        old_frequency = appointment.frequency
        old_assisted = appointment.assisted
        old_validated = appointment.patient_validated
        old_validate_failed = appointment.patient_validate_failed

        try:
            errors: List[FieldError] = []

            new_start, new_end = old_start, old_end
            if is_provided(time_string) and time_string:
                new_start, new_end = AppointmentService._resolve_times(None, None, time_string, errors)
                new_start, new_end = new_start or old_start, new_end or old_end
            else:
                if is_provided(start_time):
                    new_start = to_clinic_naive(start_time)
                if is_provided(end_time):
                    new_end = to_clinic_naive(end_time)

            new_frequency = appointment.frequency_enum
            if is_provided(frequency):
                new_frequency = AppointmentService._parse_frequency(frequency, errors)

            values = {
                "patient_id": patient_id,
                "doctor_id": doctor_id,
                "appointment_type_id": appointment_type_id,
                "is_all_day": is_all_day,
                "assisted": assisted,
                "canceled": canceled,
                "cancellation_reason": cancellation_reason,
                "referencer_doctor_id": referencer_doctor_id,
                "patient_package_id": patient_package_id,
                "frequency_number": frequency_number,
                "description": description,
                "patient_validated": patient_validated,
                "patient_validate_failed": patient_validate_failed,
            }
            provided = {name: value for name, value in values.items() if is_provided(value)}

            def new_value(name: str) -> Any:
                return provided.get(name, getattr(appointment, name))

            # Lifecycle guards surface on their own, before field validation
            if new_value("assisted") and not old_assisted:
                check_assisted_change(appointment.lifecycle_state, True)
            canceling = bool(new_value("canceled")) and not appointment.canceled
            if canceling:
                check_can_cancel(appointment.lifecycle_state, scheduling.enable_appointment_state_log)

            slot_changed = (
                new_start != old_start
                or new_end != old_end
                or new_value("doctor_id") != appointment.doctor_id
                or bool(new_value("is_all_day")) != appointment.is_all_day
            )
            if slot_changed and not canceling:
                SchedulingValidator.lock_doctor_calendar(db, clinic_id, new_value("doctor_id"))

            candidate = SchedulingCandidate(
                clinic_id=clinic_id,
                doctor_id=new_value("doctor_id"),
                patient_id=new_value("patient_id"),
                appointment_type_id=new_value("appointment_type_id"),
                start_time=new_start,
                end_time=new_end,
                appointment_id=appointment.id,
                is_all_day=bool(new_value("is_all_day")),
                frequency=new_frequency,
                frequency_number=new_value("frequency_number") or 1,
                patient_validated=bool(new_value("patient_validated")),
                patient_validate_failed=bool(new_value("patient_validate_failed")),
            )

            errors.extend(AppointmentService._validate_references(
                db,
                clinic_id,
                **{
                    name: provided[name]
                    for name in ("patient_id", "doctor_id", "appointment_type_id",
                                 "referencer_doctor_id", "patient_package_id")
                    if name in provided and provided[name] != getattr(appointment, name)
                },
            ))
            errors.extend(SchedulingValidator.validate(
                db, candidate, scheduling, check_slot=slot_changed and not canceling
            ))

            engine = get_recurrence_engine(db, clinic_id, scheduling)
            adding_series = new_frequency is not None and old_frequency is None
            if adding_series and engine is not None and not errors:
                messages = engine.validate(candidate)
                if messages:
                    errors.append(FieldError("frequency", messages[0], "recurrence_conflict"))

            if errors:
                logger.warning(
                    f"Rejected update of appointment {appointment.id} in clinic {clinic_id}: "
                    f"{', '.join(f'{e.field} {e.code}' for e in errors)}"
                )
                raise AppointmentValidationError(errors)

            # Apply the change
            for name, value in provided.items():
                setattr(appointment, name, value)
            appointment.start_time = new_start
            appointment.end_time = new_end
            appointment.frequency = new_frequency.value if new_frequency else None
            if new_start != old_start:
                appointment.reminder_sent = False
            if canceling:
                appointment.canceled_at = clinic_now_naive()
            AppointmentService._normalize_all_day(appointment)
            db.flush()

            if appointment.patient_validated and not old_validated:
                AppointmentService._fire(db, appointment, AppointmentEvent.VALIDATE_PATIENT, scheduling)
            if appointment.patient_validate_failed and not old_validate_failed:
                AppointmentService._fire(db, appointment, AppointmentEvent.VALIDATE_PATIENT_FAILED, scheduling)

            if appointment.assisted != old_assisted:
                AppointmentService._fire(
                    db, appointment, event_for_assisted_change(appointment.assisted), scheduling
                )
                PatientPackageService.propagate_assisted(db, appointment)

            if engine is not None and not canceling:
                if adding_series:
                    engine.materialize(appointment)
                elif new_frequency is None and old_frequency is not None:
                    engine.remove(appointment)
                elif save_from_now_on and (new_start != old_start or new_end != old_end) \
                        and (appointment.recursive or appointment.parent_id is not None):
                    messages = engine.update_forward(appointment, old_start, old_end)
                    if messages:
                        raise AppointmentValidationError(
                            [FieldError("start_time", messages[0], "recurrence_conflict")]
                        )

            if canceling:
                PatientPackageService.propagate_canceled(db, appointment)

            db.commit()

        except SchedulingError:
            db.rollback()
            raise
        except Exception as e:
            logger.exception(f"Failed to update appointment {appointment_id}: {e}")
            db.rollback()
            raise

        logger.info(f"Updated appointment {appointment.id} in clinic {clinic_id}")

        if canceling:
            NotificationService.dispatch(db, NotificationKind.APPOINTMENT_CANCELED, appointment)
            db.commit()
        elif any(getattr(appointment, name) != old_values[name] for name in UPDATE_NOTIFICATION_FIELDS):
            NotificationService.dispatch(db, NotificationKind.APPOINTMENT_UPDATED, appointment)

        return appointment

    @staticmethod
    def cancel_appointment(
        db: Session,
        clinic_id: int,
        appointment_id: int,
        cancellation_reason: Optional[str] = None,
        series: bool = False
    ) -> Appointment:
        """
        Cancel an appointment (soft delete).

        Note:
            This method is idempotent - if the appointment is already canceled,
            it is returned without changes.

        Args:
            db: Database session
            clinic_id: Clinic ID
            appointment_id: Appointment ID
            cancellation_reason: Optional reason stored with the cancellation
            series: Also cancel the later members of the appointment's series

        Raises:
            AppointmentNotFound: If appointment not found
            CannotCancel: If the appointment is in progress and state logging is enabled
        """
        clinic_settings = SettingsService.get_clinic_settings(db, clinic_id)
        scheduling = clinic_settings.scheduling_settings
        appointment = AppointmentService.get_appointment(db, clinic_id, appointment_id, for_update=True)

        if appointment.canceled:
            logger.info(f"Appointment {appointment_id} already canceled, skipping")
            return appointment

        try:
            check_can_cancel(appointment.lifecycle_state, scheduling.enable_appointment_state_log)

            appointment.canceled = True
            appointment.canceled_at = clinic_now_naive()
            if cancellation_reason:
                appointment.cancellation_reason = cancellation_reason
            db.flush()

            PatientPackageService.propagate_canceled(db, appointment)

            removed = 0
            engine = get_recurrence_engine(db, clinic_id, scheduling)
            if series and engine is not None:
                removed = engine.remove(appointment)

            db.commit()

        except SchedulingError as e:
            logger.warning(f"Rejected cancellation of appointment {appointment_id}: {e}")
            db.rollback()
            raise
        except Exception as e:
            logger.exception(f"Failed to cancel appointment {appointment_id}: {e}")
            db.rollback()
            raise

        logger.info(f"Canceled appointment {appointment_id} in clinic {clinic_id} ({removed} series members)")

        NotificationService.dispatch(db, NotificationKind.APPOINTMENT_CANCELED, appointment)
        db.commit()
        return appointment

    @staticmethod
    def fire_event(
        db: Session,
        clinic_id: int,
        appointment_id: int,
        event: AppointmentEvent
    ) -> Tuple[Appointment, TransitionResult]:
        """
        Fire a lifecycle event on an appointment and execute its side effects.

        Raises:
            AppointmentNotFound: If the appointment does not exist or is canceled
            InvalidTransition: If the event is not allowed from the current state
        """
        clinic_settings = SettingsService.get_clinic_settings(db, clinic_id)
        appointment = AppointmentService.get_appointment(
            db, clinic_id, appointment_id, include_canceled=False, for_update=True
        )

        try:
            result = AppointmentService._fire(
                db, appointment, AppointmentEvent(event), clinic_settings.scheduling_settings
            )
            db.commit()
        except SchedulingError as e:
            logger.warning(f"Rejected event '{event}' on appointment {appointment_id}: {e}")
            db.rollback()
            raise
        except Exception as e:
            logger.exception(f"Failed to fire '{event}' on appointment {appointment_id}: {e}")
            db.rollback()
            raise

        return appointment, result

    @staticmethod
    def confirm_by_patient(db: Session, clinic_id: int, appointment_id: int) -> Appointment:
        """
        Public assistance confirmation from a patient link.

        Only appointments that are still just created can be confirmed. The
        package is not cascaded.

        Raises:
            AppointmentNotFound: If appointment not found
            StateGuardViolation: If the appointment already progressed
        """
        appointment = AppointmentService.get_appointment(db, clinic_id, appointment_id, for_update=True)
        if appointment.canceled or appointment.lifecycle_state != AppointmentState.JUST_CREATED:
            raise StateGuardViolation("state", ERROR_CANNOT_CONFIRM, state=appointment.state)

        scheduling = SettingsService.get_clinic_settings(db, clinic_id).scheduling_settings
        try:
            appointment.assisted = True
            appointment.confirmed = True
            AppointmentService._fire(db, appointment, AppointmentEvent.CONFIRM, scheduling)
            db.commit()
        except Exception as e:
            logger.exception(f"Failed to confirm appointment {appointment_id}: {e}")
            db.rollback()
            raise

        logger.info(f"Patient confirmed appointment {appointment_id}")
        return appointment

    @staticmethod
    def update_clinic_settings(db: Session, clinic_id: int, settings: ClinicSettings) -> ClinicSettings:
        updated = SettingsService.update_clinic_settings(db, clinic_id, settings)
        db.commit()
        return updated

    @staticmethod
    def _fire(
        db: Session,
        appointment: Appointment,
        event: AppointmentEvent,
        scheduling: SchedulingSettings
    ) -> TransitionResult:
        """Apply a transition to a persisted appointment and execute its intents."""
        context = TransitionContext(
            pre_registration_enabled=scheduling.pre_registration_enabled,
            has_referencer_doctor=appointment.referencer_doctor_id is not None,
            has_patient_package=appointment.patient_package_id is not None,
        )
        result = transition(appointment.lifecycle_state, event, context)
        appointment.state = result.new_state.value
        db.flush()

        for effect in result.effects:
            AppointmentService._execute_effect(db, appointment, effect.kind, result)

        logger.info(
            f"Appointment {appointment.id}: {result.event.value} "
            f"{result.previous_state.value} -> {result.new_state.value}"
        )
        return result

    @staticmethod
    def _execute_effect(
        db: Session,
        appointment: Appointment,
        kind: EffectKind,
        result: TransitionResult
    ) -> None:
        if kind == EffectKind.RECORD_EVENT_LOG:
            db.add(AppointmentEventLog(appointment_id=appointment.id, state=result.new_state.value))
            db.flush()
        elif kind == EffectKind.HIDE_PATIENT_FROM_QUEUE:
            NotificationService.broadcast_hide_patient(appointment)
        elif kind == EffectKind.FINALIZE_VISIT:
            NotificationService.dispatch(db, NotificationKind.VISIT_RECORD_DONE, appointment)
            NotificationService.broadcast_next_patient(appointment)
        elif kind == EffectKind.CREATE_FINANCIAL_RECORD_LINE:
            FinancialRecordService.register_appointment(db, appointment)
        elif kind == EffectKind.NOTIFY_REFERENCER_DOCTOR:
            referencer = get_doctor(db, appointment.clinic_id, appointment.referencer_doctor_id,
                                    include_deleted=True)
            NotificationService.dispatch(
                db, NotificationKind.APPOINTMENT_COMPLETED, appointment, recipient_doctor=referencer
            )
        elif kind == EffectKind.BROADCAST_NEW_PATIENT:
            NotificationService.broadcast_new_patient(appointment)
        elif kind == EffectKind.PROPAGATE_BILLED_TO_PACKAGE:
            PatientPackageService.propagate_billed(db, appointment)

    @staticmethod
    def _resolve_times(
        start_time: Optional[datetime],
        end_time: Optional[datetime],
        time_string: Optional[str],
        errors: List[FieldError]
    ) -> Tuple[Optional[datetime], Optional[datetime]]:
        """Normalize requested times to clinic-local naive values."""
        if time_string:
            try:
                return parse_booking_time_string(time_string)
            except ValueError:
                errors.append(FieldError("time", ERROR_INVALID_TIME_STRING, "invalid"))
                return None, None
        return to_clinic_naive(start_time), to_clinic_naive(end_time)

    @staticmethod
    def _parse_frequency(frequency: Optional[str], errors: List[FieldError]) -> Optional[Frequency]:
        if not frequency:
            return None
        try:
            return Frequency(frequency)
        except ValueError:
            errors.append(FieldError("frequency", ERROR_INVALID_FREQUENCY, "invalid"))
            return None

    @staticmethod
    def _validate_references(
        db: Session,
        clinic_id: int,
        patient_id: Optional[int] = None,
        doctor_id: Optional[int] = None,
        appointment_type_id: Optional[int] = None,
        referencer_doctor_id: Optional[int] = None,
        patient_package_id: Optional[int] = None
    ) -> List[FieldError]:
        """Referenced entities must exist, be active and belong to the clinic."""
        lookups = (
            ("patient_id", patient_id, get_patient),
            ("doctor_id", doctor_id, get_doctor),
            ("appointment_type_id", appointment_type_id, get_appointment_type),
            ("referencer_doctor_id", referencer_doctor_id, get_doctor),
            ("patient_package_id", patient_package_id, get_patient_package),
        )
        return [
            FieldError(field, ERROR_NOT_FOUND, "not_found")
            for field, entity_id, lookup in lookups
            if entity_id is not None and lookup(db, clinic_id, entity_id) is None
        ]

    @staticmethod
    def _normalize_all_day(appointment: Appointment) -> None:
        appointment.start_time, appointment.end_time = occupied_slot(
            appointment.start_time, appointment.end_time, appointment.is_all_day
        )
