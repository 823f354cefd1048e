# payroll_api/services/notifications.py
"""
Best-effort notifications for payroll events.

Nothing in here may fail a payroll operation: every public dispatcher method
swallows transport errors after logging them and reports success as a bool.
Callers invoke these only after their own commit.
"""
from __future__ import annotations

from functools import wraps
from typing import Any, Dict, Iterable, Optional
import logging

import requests

log = logging.getLogger(__name__)


class LogTransport:
    """Default transport when no webhook is configured."""

    def send(self, event: str, payload: Dict[str, Any]) -> None:
        log.info("notification %s: %s", event, payload)


class WebhookTransport:
    def __init__(self, url: str, timeout: float = 5):
        self.url = url
        self.timeout = timeout

    def send(self, event: str, payload: Dict[str, Any]) -> None:
        resp = requests.post(self.url, json={"event": event, **payload}, timeout=self.timeout)
        resp.raise_for_status()


def _best_effort(fn):
    @wraps(fn)
    def inner(self, *args, **kwargs):
        try:
            return fn(self, *args, **kwargs) is not False
        except Exception:
            log.exception("notification %s failed", fn.__name__)
            return False
    return inner


class NotificationDispatcher:
    def __init__(self, transport=None):
        self.transport = transport or LogTransport()

    def _send_each(self, event: str, payloads: Iterable[Dict[str, Any]]) -> bool:
        """One send per recipient; a failed send does not stop the rest."""
        delivered = True
        for payload in payloads:
            try:
                self.transport.send(event, payload)
            except Exception:
                log.exception("notification %s failed for employee %s", event, payload.get("employee_id"))
                delivered = False
        return delivered

    @classmethod
    def from_config(cls, config) -> "NotificationDispatcher":
        url = config.get("NOTIFICATION_WEBHOOK_URL")
        if url:
            timeout = float(config.get("NOTIFICATION_TIMEOUT_SECONDS") or 5)
            return cls(WebhookTransport(url, timeout=timeout))
        return cls(LogTransport())

    @_best_effort
    def payroll_generation_started(self, organization_id: int, month: int, year: int, employee_count: int):
        self.transport.send("payroll_generation_started", {
            "audience": "admins",
            "organization_id": organization_id,
            "month": month,
            "year": year,
            "employee_count": employee_count,
        })

    @_best_effort
    def payroll_generated(self, records: Iterable[Any]):
        return self._send_each("payroll_generated", ({
            "audience": "employee",
            "employee_id": r.employee_id,
            "payroll_id": r.id,
            "month": r.month,
            "year": r.year,
            "net_pay": str(r.net_pay),
        } for r in records))

    @_best_effort
    def payroll_generation_completed(self, organization_id: int, month: int, year: int, created: int,
                                     preserved: int = 0):
        self.transport.send("payroll_generation_completed", {
            "audience": "admins",
            "organization_id": organization_id,
            "month": month,
            "year": year,
            "created": created,
            "preserved": preserved,
        })

    @_best_effort
    def payroll_generation_failed(self, organization_id: int, month: int, year: int, error: str):
        self.transport.send("payroll_generation_failed", {
            "audience": "admins",
            "organization_id": organization_id,
            "month": month,
            "year": year,
            "error": error,
        })

    @_best_effort
    def payment_processed(self, records: Iterable[Any], payment_method: Optional[str] = None):
        return self._send_each("payment_processed", ({
            "audience": "employee",
            "employee_id": r.employee_id,
            "payroll_id": r.id,
            "month": r.month,
            "year": r.year,
            "net_pay": str(r.net_pay),
            "payment_method": payment_method or r.payment_method,
        } for r in records))

    @_best_effort
    def payslips_available(self, payslips: Iterable[Any]):
        return self._send_each("payslip_available", ({
            "audience": "employee",
            "employee_id": p.employee_id,
            "payslip_id": p.id,
            "month": p.month,
            "year": p.year,
            "sent_to": p.sent_to,
        } for p in payslips))
