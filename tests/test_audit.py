"""Tests for the audit context."""

import pytest

from procmap import AuditContext, resolve_ip


@pytest.mark.parametrize(
    "forwarded_for, remote_addr, expected",
    [
        ("203.0.113.5", "10.0.0.1", "203.0.113.5"),
        ("203.0.113.5, 70.41.3.18, 150.172.238.178", "10.0.0.1", "203.0.113.5"),
        (" 203.0.113.5 ,10.1.1.1", None, "203.0.113.5"),
        (None, "10.0.0.1", "10.0.0.1"),
        ("", "10.0.0.1", "10.0.0.1"),
        (None, None, ""),
    ],
)
def test_resolve_ip(forwarded_for, remote_addr, expected):
    assert resolve_ip(forwarded_for, remote_addr) == expected


def test_from_request():
    context = AuditContext.from_request("alice", forwarded_for="1.2.3.4, 5.6.7.8")

    assert context == AuditContext(user_name="alice", ip="1.2.3.4")
    assert context.as_parameters() == {"UserName": "alice", "IP": "1.2.3.4"}


def test_from_request_without_user():
    assert AuditContext.from_request(remote_addr="9.9.9.9") == AuditContext("", "9.9.9.9")


def test_for_process(monkeypatch):
    monkeypatch.setattr("getpass.getuser", lambda: "svc-batch")

    assert AuditContext.for_process() == AuditContext(user_name="svc-batch", ip="")


def test_for_process_without_identity(monkeypatch):
    def fail():
        raise OSError("no login name")

    monkeypatch.setattr("getpass.getuser", fail)

    assert AuditContext.for_process().user_name == ""


def test_context_is_immutable():
    context = AuditContext("alice", "1.2.3.4")

    with pytest.raises(AttributeError):
        context.user_name = "mallory"
