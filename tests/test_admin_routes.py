import os
import re
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
from fastapi.testclient import TestClient

os.environ["USE_DB"] = "0"
os.environ["CDO_DISABLE_AUTH"] = "1"
os.environ["SUPABASE_URL"] = "http://localhost"
os.environ.setdefault("APP_SECRET_KEY", Fernet.generate_key().decode("utf-8"))

import app.main as main
from app.stores import MemoryEntityCatalog, MemoryFieldGroupStore, MemoryOptionStore
from managed_selection import OPTION_KEY

_NONCE_RE = re.compile(r'name="_wpnonce" value="([^"]+)"')


class TestAdminRoutes(unittest.TestCase):
    def setUp(self) -> None:
        self._saved = (main.option_store, main.catalog, main.field_group_store)
        main.option_store = MemoryOptionStore()
        main.catalog = MemoryEntityCatalog(
            [
                {"slug": "tour", "plural_label": "Tours", "taxonomies": [{"slug": "tour_cat"}]},
                {"slug": "hotel", "plural_label": "Hotels"},
                {"slug": "page", "plural_label": "Pages"},
            ]
        )
        main.field_group_store = MemoryFieldGroupStore(
            [
                {
                    "ID": 7,
                    "title": "Tour <Details>",
                    "key": "group_tour",
                    "location": [[{"param": "post_type", "operator": "==", "value": "tour"}]],
                }
            ]
        )
        self.client = TestClient(main.app)

    def tearDown(self) -> None:
        main.option_store, main.catalog, main.field_group_store = self._saved

    def _nonce(self) -> str:
        res = self.client.get("/admin/organizer/settings")
        self.assertEqual(res.status_code, 200)
        match = _NONCE_RE.search(res.text)
        self.assertIsNotNone(match)
        return match.group(1)

    def test_health(self) -> None:
        self.assertEqual(self.client.get("/health").json(), {"ok": True})

    def test_menu_empty_selection(self) -> None:
        body = self.client.get("/admin/menu").json()
        self.assertTrue(body["ok"])
        self.assertEqual(body["selection"], [])
        self.assertEqual(body["suppressed"], [])
        ids = [entry["id"] for entry in body["menu"]]
        self.assertEqual(ids, ["edit.php?post_type=tour", "edit.php?post_type=hotel", "cdo-main", "cdo-fields"])

    def test_settings_form_lists_manageable_types(self) -> None:
        main.option_store.set_option(OPTION_KEY, ["hotel"])
        res = self.client.get("/admin/organizer/settings")
        self.assertEqual(res.status_code, 200)
        self.assertIn('value="tour">', res.text)
        self.assertIn('value="hotel" checked>', res.text)
        self.assertNotIn('value="page"', res.text)

    def test_save_then_menu(self) -> None:
        nonce = self._nonce()
        res = self.client.post(
            "/admin/organizer/settings",
            data={"managed_types": ["Tour", "ghost", "tour"], "_wpnonce": nonce},
        )
        self.assertEqual(res.status_code, 200)
        self.assertIn("Settings saved.", res.text)
        self.assertIn('value="tour" checked>', res.text)
        self.assertEqual(main.option_store.get_option(OPTION_KEY), ["tour", "ghost"])

        body = self.client.get("/admin/menu").json()
        self.assertEqual(body["suppressed"], ["tour"])
        root = [e for e in body["menu"] if e["id"] == "cdo-main"][0]
        self.assertEqual(
            [c["id"] for c in root["children"]],
            ["cdo-main", "cdo-settings", "cdo-view-tour", "cdo-add-tour", "cdo-tax-tour"],
        )
        self.assertNotIn("edit.php?post_type=tour", [e["id"] for e in body["menu"]])

    def test_save_with_bad_nonce(self) -> None:
        main.option_store.set_option(OPTION_KEY, ["hotel"])
        res = self.client.post("/admin/organizer/settings", data={"managed_types": ["tour"], "_wpnonce": "forged"})
        self.assertEqual(res.status_code, 403)
        self.assertIn("notice-error", res.text)
        self.assertIn('value="hotel" checked>', res.text)
        self.assertEqual(main.option_store.get_option(OPTION_KEY), ["hotel"])

    def test_save_without_nonce(self) -> None:
        res = self.client.post("/admin/organizer/settings", data={"managed_types": ["tour"]})
        self.assertEqual(res.status_code, 403)
        self.assertIsNone(main.option_store.get_option(OPTION_KEY))

    def test_editor_cannot_open_or_save_settings(self) -> None:
        nonce = self._nonce()
        with patch.dict(os.environ, {"CDO_DEV_ROLE": "editor"}):
            self.assertEqual(self.client.get("/admin/organizer/settings").status_code, 403)
            res = self.client.post("/admin/organizer/settings", data={"managed_types": ["tour"], "_wpnonce": nonce})
            self.assertEqual(res.status_code, 403)
            self.assertEqual(self.client.get("/admin/organizer").status_code, 200)
        self.assertIsNone(main.option_store.get_option(OPTION_KEY))

    def test_overview_lists_groups(self) -> None:
        main.option_store.set_option(OPTION_KEY, ["tour"])
        res = self.client.get("/admin/organizer")
        self.assertEqual(res.status_code, 200)
        self.assertIn("View All Tours", res.text)
        self.assertIn("Add Tour", res.text)
        self.assertIn("Categories (Tours)", res.text)

    def test_go_redirects(self) -> None:
        main.option_store.set_option(OPTION_KEY, ["tour"])
        res = self.client.get("/admin/organizer/go/cdo-tax-tour", follow_redirects=False)
        self.assertEqual(res.status_code, 302)
        self.assertEqual(res.headers["location"], "/wp-admin/edit-tags.php?taxonomy=tour_cat&post_type=tour")
        res = self.client.get("/admin/organizer/go/cdo-settings", follow_redirects=False)
        self.assertEqual(res.headers["location"], "/admin/organizer/settings")

    def test_go_unknown_node(self) -> None:
        res = self.client.get("/admin/organizer/go/cdo-view-hotel", follow_redirects=False)
        self.assertEqual(res.status_code, 404)
        self.assertEqual(res.json()["errors"][0]["code"], "MENU_NODE_NOT_FOUND")

    def test_go_forbidden(self) -> None:
        main.option_store.set_option(OPTION_KEY, ["tour"])
        with patch.dict(os.environ, {"CDO_DEV_ROLE": "contributor"}):
            res = self.client.get("/admin/organizer/go/cdo-tax-tour", follow_redirects=False)
        self.assertEqual(res.status_code, 403)
        self.assertEqual(res.json()["errors"][0]["code"], "AUTH_FORBIDDEN")

    def test_save_without_secret_key_is_rejected(self) -> None:
        main.option_store.set_option(OPTION_KEY, ["hotel"])
        with patch.dict(os.environ, {"APP_SECRET_KEY": ""}):
            res = self.client.post("/admin/organizer/settings", data={"managed_types": ["tour"], "_wpnonce": "anything"})
        self.assertEqual(res.status_code, 403)
        self.assertIn("notice-error", res.text)
        self.assertIn('name="_wpnonce" value=""', res.text)
        self.assertEqual(main.option_store.get_option(OPTION_KEY), ["hotel"])

    def test_overview_heading_uses_menu_label(self) -> None:
        main.catalog = MemoryEntityCatalog(
            [{"slug": "tour", "plural_label": "Tours", "edit_capability": "edit_tours", "create_capability": "edit_posts"}]
        )
        main.option_store.set_option(OPTION_KEY, ["tour"])
        res = self.client.get("/admin/organizer")
        self.assertEqual(res.status_code, 200)
        self.assertIn("Custom Data\n    Tours\n        - Add Tour\n", res.text)

    def test_field_group_dashboard_and_redirect(self) -> None:
        res = self.client.get("/admin/field-groups")
        self.assertEqual(res.status_code, 200)
        self.assertIn("Tour &lt;Details&gt;", res.text)
        self.assertIn("post_type == tour", res.text)
        res = self.client.get("/admin/field-groups/7/edit", follow_redirects=False)
        self.assertEqual(res.status_code, 302)
        self.assertEqual(res.headers["location"], "/wp-admin/post.php?post=7&action=edit")
        res = self.client.get("/admin/field-groups/8/edit", follow_redirects=False)
        self.assertEqual(res.status_code, 404)


if __name__ == "__main__":
    unittest.main()
