import os
import sys
import unittest


ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
SRC = os.path.join(ROOT, "src")
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)
if SRC not in sys.path:
    sys.path.insert(0, SRC)

from app.capabilities import actor_capabilities, role_can


class TestCapabilities(unittest.TestCase):
    def test_roles(self) -> None:
        self.assertTrue(role_can("manage_options", {"role": "administrator"}))
        self.assertFalse(role_can("manage_options", {"role": "editor"}))
        self.assertTrue(role_can("manage_categories", {"role": "editor"}))
        self.assertTrue(role_can("edit_posts", {"role": "contributor"}))
        self.assertFalse(role_can("edit_posts", {"role": "subscriber"}))
        self.assertFalse(role_can("edit_posts", {"role": "unknown"}))
        self.assertFalse(role_can("edit_posts", None))
        self.assertFalse(role_can("", {"role": "administrator"}))

    def test_explicit_capabilities(self) -> None:
        actor = {"role": "author", "roles": ["editor"], "capabilities": ["edit_tours"]}
        caps = actor_capabilities(actor)
        self.assertIn("edit_tours", caps)
        self.assertIn("manage_categories", caps)

    def test_capability_map_revokes(self) -> None:
        actor = {"role": "administrator", "capabilities": {"manage_options": False, "edit_hotels": True}}
        self.assertFalse(role_can("manage_options", actor))
        self.assertTrue(role_can("edit_hotels", actor))


if __name__ == "__main__":
    unittest.main()
