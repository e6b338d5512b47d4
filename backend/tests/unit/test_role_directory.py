"""
Unit tests for the role directory snapshot and repository.
"""
import pytest

from leadconsole.core.exceptions import InvalidArgument, NotFound
from leadconsole.core.transactions import transaction
from leadconsole.models import Role
from leadconsole.services.role_directory import (
    RoleDirectory,
    RoleDirectoryRepository,
    normalize_identifier,
    sanitize_identifier,
)


class TestIdentifierHelpers:
    """Identifier normalization."""

    def test_normalize_trims_and_lowercases(self):
        """Whitespace and case are ignored for comparison."""
        assert normalize_identifier("  Admin@Example.com ") == "admin@example.com"

    def test_sanitize_replaces_dots(self):
        """Notification keys cannot contain dots."""
        assert sanitize_identifier("Jane.Doe@Example.com") == "jane_doe@example_com"


class TestRoleDirectorySnapshot:
    """Role resolution against an in-memory snapshot."""

    def test_resolve_is_case_insensitive(self):
        """Stored keys and the lookup identifier are both normalized."""
        directory = RoleDirectory(roles={"admin@example.com": "admin"})
        assert directory.resolve("Admin@Example.com") == Role.ADMIN

    def test_resolve_missing_identifier_returns_none(self):
        """Identifiers not in the directory have no role."""
        directory = RoleDirectory(roles={"admin@example.com": "admin"})
        assert directory.resolve("other@example.com") is None

    def test_last_matching_key_wins(self):
        """Keys that normalize equal resolve to the last stored one."""
        directory = RoleDirectory(roles={
            "Boss@Example.com": "user",
            "boss@example.com": "super",
        })
        assert directory.resolve("boss@example.com") == Role.SUPER

    def test_legacy_super_admin_value(self):
        """Directories written earlier store 'super-admin'."""
        directory = RoleDirectory(roles={"root@example.com": "super-admin"})
        assert directory.resolve("root@example.com") == Role.SUPER

    def test_unknown_role_value_resolves_to_none(self):
        """Unrecognized role strings grant nothing."""
        directory = RoleDirectory(roles={"x@example.com": "owner"})
        assert directory.resolve("x@example.com") is None

    def test_notification_defaults_are_true(self):
        """Absent preferences mean the member is subscribed."""
        directory = RoleDirectory(roles={"a@example.com": "user"})
        prefs = directory.notification_preferences("a@example.com")
        assert prefs.notify_on_new_lead is True
        assert prefs.notify_on_daily_summary is True

    def test_recipients_skip_disabled_flags(self):
        """Only members whose flag is not false receive the notification."""
        directory = RoleDirectory(
            roles={"a@example.com": "user", "b.c@example.com": "admin"},
            notifications={"b_c@example_com": {"notifyOnNewLead": False}},
        )
        assert directory.recipients("notifyOnNewLead") == ["a@example.com"]
        assert directory.recipients("notifyOnDailySummary") == ["a@example.com", "b.c@example.com"]

    def test_recipients_reject_unknown_flag(self):
        """Only the two notification flags exist."""
        with pytest.raises(InvalidArgument):
            RoleDirectory().recipients("notifyOnEverything")

    def test_members_sorted_by_rank_then_identifier(self):
        """Listing shows the highest role first."""
        directory = RoleDirectory(roles={
            "zed@example.com": "user",
            "amy@example.com": "user",
            "root@example.com": "super",
            "mid@example.com": "admin",
        })
        identifiers = [member.identifier for member in directory.members()]
        assert identifiers == [
            "root@example.com",
            "mid@example.com",
            "amy@example.com",
            "zed@example.com",
        ]


class TestRoleDirectoryRepository:
    """Reads and writes of the stored directory record."""

    def test_empty_store_yields_empty_directory(self, db_session):
        """A missing record resolves everyone to no role."""
        directory = RoleDirectoryRepository(db_session).get()
        assert directory.roles == {}
        assert directory.resolve("anyone@example.com") is None

    def test_assign_replaces_case_variants(self, db_session):
        """Re-assigning under a different spelling leaves a single key."""
        repository = RoleDirectoryRepository(db_session)
        with transaction(db_session):
            repository.assign("Staff@Example.com", Role.USER)
        with transaction(db_session):
            repository.assign("staff@example.com", Role.ADMIN)

        directory = repository.get()
        assert directory.roles == {"staff@example.com": "admin"}
        assert directory.resolve("STAFF@example.com") == Role.ADMIN

    def test_assign_initializes_notifications(self, db_session):
        """New members start subscribed to both notifications."""
        repository = RoleDirectoryRepository(db_session)
        with transaction(db_session):
            repository.assign("new.member@example.com", Role.USER)

        notifications = repository.get().notifications
        assert notifications["new_member@example_com"] == {
            "notifyOnNewLead": True,
            "notifyOnDailySummary": True,
        }

    def test_assign_blank_identifier_rejected(self, db_session):
        """Blank identifiers are invalid."""
        with pytest.raises(InvalidArgument):
            RoleDirectoryRepository(db_session).assign("   ", Role.USER)

    def test_version_increments_on_every_write(self, db_session):
        """The record version moves forward with each committed change."""
        repository = RoleDirectoryRepository(db_session)
        with transaction(db_session):
            repository.assign("a@example.com", Role.USER)
        first = repository.get().version
        with transaction(db_session):
            repository.assign("b@example.com", Role.ADMIN)
        assert repository.get().version == first + 1

    def test_remove_deletes_role_and_preferences(self, db_session, seed_roles):
        """Removal drops both the role and the notification entry."""
        seed_roles({"gone@example.com": Role.USER, "stay@example.com": Role.ADMIN})
        repository = RoleDirectoryRepository(db_session)
        with transaction(db_session):
            repository.remove("Gone@Example.com")

        directory = repository.get()
        assert directory.resolve("gone@example.com") is None
        assert "gone@example_com" not in directory.notifications
        assert directory.resolve("stay@example.com") == Role.ADMIN

    def test_remove_unknown_identifier(self, db_session, seed_roles):
        """Removing someone not in the directory is NotFound."""
        seed_roles({"a@example.com": Role.USER})
        with pytest.raises(NotFound):
            RoleDirectoryRepository(db_session).remove("b@example.com")

    def test_set_notification(self, db_session, seed_roles):
        """A flag can be switched off for one member."""
        seed_roles({"a@example.com": Role.USER, "b@example.com": Role.USER})
        repository = RoleDirectoryRepository(db_session)
        with transaction(db_session):
            repository.set_notification("a@example.com", "notifyOnDailySummary", False)

        directory = repository.get()
        assert directory.recipients("notifyOnDailySummary") == ["b@example.com"]
        assert directory.recipients("notifyOnNewLead") == ["a@example.com", "b@example.com"]

    def test_set_notification_unknown_member(self, db_session, seed_roles):
        """Preferences can only be set for directory members."""
        seed_roles({"a@example.com": Role.USER})
        with pytest.raises(NotFound):
            RoleDirectoryRepository(db_session).set_notification("x@example.com", "notifyOnNewLead", False)

    def test_set_notification_unknown_flag(self, db_session, seed_roles):
        """Unknown flags are invalid arguments."""
        seed_roles({"a@example.com": Role.USER})
        with pytest.raises(InvalidArgument):
            RoleDirectoryRepository(db_session).set_notification("a@example.com", "notifyOnAll", False)

    def test_several_assignments_in_one_transaction(self, db_session):
        """The first write creates the record; later writes in the same transaction reuse it."""
        repository = RoleDirectoryRepository(db_session)
        with transaction(db_session):
            repository.assign("a@example.com", Role.ADMIN)
            repository.assign("b@example.com", Role.USER)

        directory = repository.get()
        assert directory.resolve("a@example.com") == Role.ADMIN
        assert directory.resolve("b@example.com") == Role.USER

    def test_set_notification_for_member_with_unknown_role(self, db_session):
        """Members listed by the directory can have preferences set even if their role does not parse."""
        repository = RoleDirectoryRepository(db_session)
        with transaction(db_session):
            repository.assign("odd@example.com", Role.USER)
        record = repository._record()
        record.roles = {"odd@example.com": "owner"}
        db_session.commit()

        with transaction(db_session):
            repository.set_notification("Odd@Example.com", "notifyOnNewLead", False)

        directory = repository.get()
        assert [m.identifier for m in directory.members()] == ["odd@example.com"]
        assert directory.notification_preferences("odd@example.com").notify_on_new_lead is False
