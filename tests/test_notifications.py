"""Tests for notification rendering."""

import pytest

from app.services.notifications import TEMPLATES, TITLES, render


def test_only_attendance_messages_are_templated():
    assert set(TEMPLATES) == {"check_in_success", "check_out_success"}
    assert set(TITLES) == set(TEMPLATES)


def test_check_in_message_lists_points_and_location():
    title, message = render("check_in_success", {
        "user_name": "Budi", "check_in_time": "2024-01-10 08:30", "location_name": "HQ", "points": 10,
    })
    assert title == "Check-in Successful"
    assert "HQ" in message
    assert "+10" in message


def test_zero_points_are_not_mentioned():
    _, message = render("check_out_success", {"check_out_time": "2024-01-10 17:30", "points": 0})
    assert "Points" not in message
    assert "Location: -" in message


def test_unknown_type_raises():
    with pytest.raises(KeyError):
        render("points_earned", {"points": 5})
