import pytest

from cleanscan.modules.errors import NotFound, Unauthenticated, Unauthorized, WriteError


def test_staff_check_in_is_recorded(managers, make_room, make_user):
    room = make_room("204", building_name="North Wing")
    staff = make_user(role="staff", email="sam@example.com")

    event = managers["cleaning"].record_cleaning(room["id"], staff["id"])

    assert event.room_id == room["id"]
    assert event.staff_id == staff["id"]
    assert event.status == "cleaned"
    assert event.room_number == "204"
    assert event.building_name == "North Wing"
    assert event.staff_email == "sam@example.com"
    assert event.timestamp.tzinfo is not None


def test_check_in_is_visible_in_history_immediately(managers, make_room, make_user):
    room = make_room()
    other_room = make_room("102")
    staff = make_user(role="staff")
    cleaning = managers["cleaning"]

    first = cleaning.record_cleaning(room["id"], staff["id"])
    second = cleaning.record_cleaning(room["id"], staff["id"])
    cleaning.record_cleaning(other_room["id"], staff["id"])

    history = cleaning.get_room_history(room["id"])
    assert [e.id for e in history] == [second.id, first.id]
    assert len(cleaning.get_all_cleaning_logs()) == 3


@pytest.mark.parametrize("role", ["client", "admin", "manager"])
def test_non_staff_cannot_check_in(managers, db_manager, make_room, make_user, role):
    room = make_room()
    user = make_user(role=role)

    with pytest.raises(Unauthorized):
        managers["cleaning"].record_cleaning(room["id"], user["id"])
    assert db_manager.count("cleaning_logs") == 0


def test_role_is_rechecked_at_check_in(managers, db_manager, make_room, make_user):
    room = make_room()
    staff = make_user(role="staff")
    db_manager.update("users", {"role": "client"}, {"id": staff["id"]})

    with pytest.raises(Unauthorized):
        managers["cleaning"].record_cleaning(room["id"], staff["id"])


def test_unknown_actor_is_unauthenticated(managers, make_room):
    room = make_room()
    with pytest.raises(Unauthenticated):
        managers["cleaning"].record_cleaning(room["id"], 999)


def test_store_rejection_is_a_write_error(managers, db_manager, make_user):
    staff = make_user(role="staff")

    with pytest.raises(WriteError):
        managers["cleaning"].record_cleaning(9999, staff["id"])
    assert db_manager.count("cleaning_logs") == 0


def test_malformed_room_id_is_not_found(managers, make_user):
    staff = make_user(role="staff")
    with pytest.raises(NotFound):
        managers["cleaning"].record_cleaning("not-a-room", staff["id"])
