import unittest

from marketledger import create_app
from marketledger.extensions import db
from marketledger.models import AdminSetting, User
from marketledger.services import settings_service
from marketledger.services.settings_service import SettingsNotFoundError, SettingsValidationError


class SettingsServiceTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls.app = create_app({
            "SECRET_KEY": "test",
            "SQLALCHEMY_DATABASE_URI": "sqlite://",
            "SQLALCHEMY_TRACK_MODIFICATIONS": False,
            "TESTING": True,
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
        db.session.query(AdminSetting).delete()
        db.session.query(User).delete()
        db.session.commit()

        self.admin = User(email="settings-admin@example.com", password_hash="x", is_super_admin=True)
        db.session.add(self.admin)
        db.session.commit()

    def test_defaults_without_rows(self):
        self.assertEqual(settings_service.get_decimal("per_day_platform_fee"), 25)
        self.assertEqual(settings_service.get_int("new_seller_free_months"), 1)
        self.assertTrue(settings_service.get_bool("manual_deposits_enabled"))
        self.assertFalse(settings_service.get_bool("cod_only_mode"))

    def test_set_and_read_back(self):
        row = settings_service.set_setting("per_day_platform_fee", "30.5", updated_by_user_id=self.admin.id)
        self.assertEqual(row.setting_value, "30.50")
        self.assertEqual(str(settings_service.get_decimal("per_day_platform_fee")), "30.50")

        listed = {s["key"]: s for s in settings_service.list_settings()}
        self.assertFalse(listed["per_day_platform_fee"]["is_default"])
        self.assertEqual(listed["per_day_platform_fee"]["updated_by_user_id"], self.admin.id)
        self.assertTrue(listed["min_payout_amount"]["is_default"])

    def test_bool_coercion(self):
        settings_service.set_setting("cod_only_mode", "yes")
        self.assertTrue(settings_service.get_bool("cod_only_mode"))
        with self.assertRaises(SettingsValidationError):
            settings_service.set_setting("cod_only_mode", "maybe")

    def test_constraints(self):
        with self.assertRaises(SettingsValidationError):
            settings_service.set_setting("global_commission_percentage", "101")
        with self.assertRaises(SettingsValidationError):
            settings_service.set_setting("new_seller_free_months", -1)
        with self.assertRaises(SettingsValidationError):
            settings_service.set_setting("new_seller_free_months", True)

    def test_unknown_key(self):
        with self.assertRaises(SettingsNotFoundError):
            settings_service.get_setting("tax_rate")
        with self.assertRaises(SettingsNotFoundError):
            settings_service.set_setting("tax_rate", "5")

    def test_update_is_all_or_nothing(self):
        with self.assertRaises(SettingsValidationError):
            settings_service.update_settings({
                "per_day_platform_fee": "40",
                "flash_sale_min_discount_percentage": "150",
            })
        self.assertEqual(db.session.query(AdminSetting).count(), 0)
        self.assertEqual(settings_service.get_decimal("per_day_platform_fee"), 25)

    def test_garbage_row_falls_back_to_default(self):
        db.session.add(AdminSetting(setting_key="min_payout_amount", setting_value="lots"))
        db.session.commit()
        self.assertEqual(settings_service.get_decimal("min_payout_amount"), 1000)

    def test_seed_is_idempotent(self):
        settings_service.set_setting("cod_only_mode", True)
        created = settings_service.ensure_defaults_seeded()
        self.assertEqual(created, 6)
        self.assertEqual(settings_service.ensure_defaults_seeded(), 0)
        # existing rows are never overwritten
        self.assertTrue(settings_service.get_bool("cod_only_mode"))


if __name__ == "__main__":
    unittest.main()
