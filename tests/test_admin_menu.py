import os
import sys
import unittest


ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
SRC = os.path.join(ROOT, "src")
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)
if SRC not in sys.path:
    sys.path.insert(0, SRC)

from admin_menu import compose_admin_menu
from app.capabilities import role_can
from managed_selection import AuthContext


CATALOG = [
    {"slug": "tour", "plural_label": "Tours", "taxonomies": [{"slug": "tour_cat"}]},
    {"slug": "hotel", "plural_label": "Hotels"},
    {"slug": "page", "plural_label": "Pages"},
    {"slug": "acf-field-group", "plural_label": "Field Groups"},
]


def _auth(role):
    return AuthContext(actor={"id": "u1", "role": role}, can_fn=role_can)


class TestAdminMenu(unittest.TestCase):
    def test_suppresses_managed_host_entries(self) -> None:
        result = compose_admin_menu(CATALOG, ("tour",), _auth("administrator"))
        ids = [entry["id"] for entry in result["menu"]]
        self.assertEqual(ids, ["edit.php?post_type=hotel", "cdo-main"])
        self.assertEqual(result["suppressed"], ["tour"])
        root = result["menu"][1]
        self.assertEqual(
            [child["id"] for child in root["children"]],
            ["cdo-main", "cdo-settings", "cdo-view-tour", "cdo-add-tour", "cdo-tax-tour"],
        )

    def test_capabilities_filter_entries(self) -> None:
        result = compose_admin_menu(CATALOG, ("tour", "hotel"), _auth("contributor"))
        root = result["menu"][0]
        self.assertEqual(root["id"], "cdo-main")
        self.assertNotIn("cdo-settings", [c["id"] for c in root["children"]])
        self.assertNotIn("cdo-tax-tour", [c["id"] for c in root["children"]])

    def test_subscriber_sees_nothing(self) -> None:
        result = compose_admin_menu(CATALOG, ("tour",), _auth("subscriber"), field_groups=[{"ID": 1, "title": "A"}])
        self.assertEqual(result["menu"], [])

    def test_field_group_root(self) -> None:
        groups = [{"ID": 1, "title": "Tour Details"}, {"ID": 0, "title": "Broken"}]
        result = compose_admin_menu(CATALOG, (), _auth("administrator"), field_groups=groups)
        fields = [e for e in result["menu"] if e["id"] == "cdo-fields"]
        self.assertEqual(len(fields), 1)
        self.assertEqual([c["id"] for c in fields[0]["children"]], ["cdo-field-group-1"])
        self.assertEqual(result["suppressed"], [])

    def test_editor_has_no_field_group_root(self) -> None:
        result = compose_admin_menu(CATALOG, (), _auth("editor"), field_groups=[{"ID": 1, "title": "A"}])
        self.assertNotIn("cdo-fields", [e["id"] for e in result["menu"]])


if __name__ == "__main__":
    unittest.main()
