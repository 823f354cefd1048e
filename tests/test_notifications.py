from types import SimpleNamespace

import requests

from payroll_api.services.notifications import NotificationDispatcher, LogTransport, WebhookTransport


class FailsFor:
    """Raises for one employee, records everyone else."""
    def __init__(self, employee_id):
        self.employee_id = employee_id
        self.sent = []

    def send(self, event, payload):
        if payload.get("employee_id") == self.employee_id:
            raise requests.ConnectionError("device unreachable")
        self.sent.append((event, payload["employee_id"]))


def _records(*employee_ids):
    return [SimpleNamespace(id=100 + e, employee_id=e, month=9, year=2025, net_pay="1000.00",
                            payment_method="cash", sent_to=None)
            for e in employee_ids]


def test_one_failed_send_does_not_stop_the_rest():
    transport = FailsFor(employee_id=2)
    notifier = NotificationDispatcher(transport)

    assert notifier.payroll_generated(_records(1, 2, 3)) is False
    assert transport.sent == [("payroll_generated", 1), ("payroll_generated", 3)]

    transport.sent.clear()
    assert notifier.payment_processed(_records(2, 4)) is False
    assert transport.sent == [("payment_processed", 4)]

    transport.sent.clear()
    assert notifier.payslips_available(_records(5, 2, 6)) is False
    assert [e for _, e in transport.sent] == [5, 6]


def test_all_delivered_reports_true(recorder):
    notifier = NotificationDispatcher(recorder)
    assert notifier.payroll_generated(_records(1, 2)) is True
    assert notifier.payroll_generation_completed(1, 9, 2025, created=2) is True
    assert recorder.events() == ["payroll_generated", "payroll_generated", "payroll_generation_completed"]


def test_admin_event_failure_is_swallowed(exploding):
    assert NotificationDispatcher(exploding).payroll_generation_failed(1, 9, 2025, "boom") is False


def test_from_config_picks_transport():
    assert isinstance(NotificationDispatcher.from_config({}).transport, LogTransport)
    hook = NotificationDispatcher.from_config({
        "NOTIFICATION_WEBHOOK_URL": "http://hooks.test/payroll", "NOTIFICATION_TIMEOUT_SECONDS": 2,
    }).transport
    assert isinstance(hook, WebhookTransport)
    assert hook.timeout == 2.0
