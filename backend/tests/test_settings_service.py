import unittest

from canteen import create_app
from canteen.errors import PrecisionError, ValidationError
from canteen.extensions import db
from canteen.models import AppSettings
from canteen.services import settings_service


class SettingsServiceTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls.app = create_app({
            "SECRET_KEY": "test",
            "SQLALCHEMY_DATABASE_URI": "sqlite:///:memory:",
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
        db.session.query(AppSettings).delete()
        db.session.commit()

    def test_defaults_created_on_first_read(self):
        settings = settings_service.get_app_settings()
        db.session.commit()
        self.assertEqual(settings.global_discount_percent_bps, 0)
        self.assertEqual(settings.global_discount_flat_cents, 0)
        self.assertEqual(db.session.query(AppSettings).count(), 1)

    def test_get_is_idempotent(self):
        first = settings_service.get_app_settings()
        second = settings_service.get_app_settings()
        self.assertIs(first, second)

    def test_partial_update(self):
        settings_service.update_app_settings(global_discount_percent="12.5", global_discount_flat="0.75")
        settings = settings_service.update_app_settings(brand_name="  Cafe  ")

        self.assertEqual(settings.brand_name, "Cafe")
        self.assertEqual(settings.global_discount_percent_bps, 1250)
        self.assertEqual(settings.global_discount_flat_cents, 75)

    def test_none_resets_discount(self):
        settings_service.update_app_settings(global_discount_percent=10, global_discount_flat=1)
        settings = settings_service.update_app_settings(global_discount_percent=None, global_discount_flat=None)

        self.assertEqual(settings.global_discount_percent_bps, 0)
        self.assertEqual(settings.global_discount_flat_cents, 0)

    def test_rejections_leave_settings_unchanged(self):
        settings_service.update_app_settings(global_discount_percent=5)

        with self.assertRaises(ValidationError):
            settings_service.update_app_settings(global_discount_percent=101)
        with self.assertRaises(PrecisionError):
            settings_service.update_app_settings(global_discount_flat="0.005")
        with self.assertRaises(ValidationError):
            settings_service.update_app_settings(global_discount_flat=-1)
        with self.assertRaises(ValidationError):
            settings_service.update_app_settings(brand_name=42)

        db.session.expire_all()
        self.assertEqual(settings_service.get_app_settings().global_discount_percent_bps, 500)


if __name__ == "__main__":
    unittest.main()
