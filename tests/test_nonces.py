import os
import sys
import unittest
from unittest.mock import patch


ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
SRC = os.path.join(ROOT, "src")
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)
if SRC not in sys.path:
    sys.path.insert(0, SRC)

from cryptography.fernet import Fernet

from app.nonces import NonceError, create_nonce, verify_nonce


class TestNonces(unittest.TestCase):
    def setUp(self) -> None:
        self._env = patch.dict(os.environ, {"APP_SECRET_KEY": Fernet.generate_key().decode("utf-8")})
        self._env.start()

    def tearDown(self) -> None:
        self._env.stop()

    def test_round_trip(self) -> None:
        actor = {"id": "u1"}
        token = create_nonce("cdo_save_settings", actor)
        self.assertTrue(verify_nonce(token, "cdo_save_settings", actor))

    def test_bound_to_action_and_actor(self) -> None:
        token = create_nonce("cdo_save_settings", {"id": "u1"})
        self.assertFalse(verify_nonce(token, "other_action", {"id": "u1"}))
        self.assertFalse(verify_nonce(token, "cdo_save_settings", {"id": "u2"}))
        self.assertFalse(verify_nonce("garbage", "cdo_save_settings", {"id": "u1"}))
        self.assertFalse(verify_nonce(None, "cdo_save_settings", {"id": "u1"}))

    def test_expired(self) -> None:
        token = create_nonce("cdo_save_settings", {"id": "u1"})
        with patch.dict(os.environ, {"CDO_NONCE_TTL_S": "-1"}):
            self.assertFalse(verify_nonce(token, "cdo_save_settings", {"id": "u1"}))

    def test_missing_key(self) -> None:
        with patch.dict(os.environ, {"APP_SECRET_KEY": ""}):
            with self.assertRaises(NonceError):
                create_nonce("cdo_save_settings", {"id": "u1"})


if __name__ == "__main__":
    unittest.main()
