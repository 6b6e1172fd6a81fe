import unittest
from decimal import Decimal

from accountsforge import create_app
from accountsforge.errors import NotFoundError, PermissionDeniedError, ValidationError
from accountsforge.extensions import db
from accountsforge.models import CompanySetting, Identity, Role, SecurityEvent
from accountsforge.policy import Principal
from accountsforge.services import auth_service, settings_service


class SettingsServiceTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls.app = create_app({
            "TESTING": True,
            "SQLALCHEMY_DATABASE_URI": "sqlite:///:memory:",
            "SQLALCHEMY_TRACK_MODIFICATIONS": False,
            "DEFAULT_PROFILE_ROLE": "employee",
            "DEFAULT_COMMISSION_RATE": "5.00",
            "BCRYPT_LOG_ROUNDS": 4,
        })
        cls.ctx = cls.app.app_context()
        cls.ctx.push()
        db.create_all()

    @classmethod
    def tearDownClass(cls):
        db.session.remove()
        db.drop_all()
        cls.ctx.pop()

    def setUp(self):
        db.session.query(SecurityEvent).delete()
        db.session.query(CompanySetting).delete()
        db.session.query(Identity).delete()
        db.session.commit()

        admin_identity = auth_service.register_identity("root@test.local", "Password123!", full_name="Root")
        staff_identity = auth_service.register_identity("staff@test.local", "Password123!", full_name="Staff")
        self.admin = Principal(user_id=admin_identity.id, role=Role.ADMIN)
        self.staff = Principal(user_id=staff_identity.id, role=Role.EMPLOYEE)

    def test_seed_inserts_catalog_once(self):
        self.assertEqual(settings_service.ensure_defaults_seeded(), 4)
        self.assertEqual(settings_service.ensure_defaults_seeded(), 0)
        keys = [s.setting_key for s in settings_service.list_settings()]
        self.assertEqual(keys, ["company_name", "currency", "default_commission_rate", "max_expense_amount"])

    def test_seed_keeps_existing_values(self):
        settings_service.ensure_defaults_seeded()
        settings_service.set_setting(self.admin, "currency", "eur")
        settings_service.ensure_defaults_seeded()
        self.assertEqual(settings_service.get_currency(), "EUR")

    def test_default_rate_falls_back_to_config(self):
        self.assertEqual(settings_service.get_default_commission_rate(), Decimal("5.00"))

    def test_admin_sets_rate(self):
        settings_service.ensure_defaults_seeded()
        row = settings_service.set_setting(self.admin, "default_commission_rate", "7.5")
        self.assertEqual(row.setting_value, "7.50")
        self.assertEqual(row.updated_by, self.admin.user_id)
        self.assertEqual(settings_service.get_default_commission_rate(), Decimal("7.50"))

    def test_non_admin_is_denied_and_audited(self):
        settings_service.ensure_defaults_seeded()
        with self.assertRaises(PermissionDeniedError):
            settings_service.set_setting(self.staff, "company_name", "Evil Corp")

        self.assertEqual(settings_service.get_setting_value("company_name"), "AccountsForge Pro")
        event = db.session.query(SecurityEvent).filter_by(user_id=self.staff.user_id).one()
        self.assertEqual(event.event_type, "PERMISSION_DENIED")
        self.assertEqual(event.reason, "admin_required")

    def test_unknown_key(self):
        with self.assertRaises(NotFoundError):
            settings_service.set_setting(self.admin, "favourite_colour", "blue")

    def test_value_validation(self):
        bad = [
            ("default_commission_rate", "101"),
            ("default_commission_rate", "-1"),
            ("default_commission_rate", "abc"),
            ("max_expense_amount", None),
            ("currency", "DOLLARS"),
            ("company_name", "   "),
        ]
        for key, value in bad:
            with self.subTest(key=key, value=value):
                with self.assertRaises(ValidationError):
                    settings_service.set_setting(self.admin, key, value)


if __name__ == "__main__":
    unittest.main()
