"""
Shared test fixtures — a throwaway host project and module manifests.
"""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from modgraft.core.models.project import ProjectPaths

API_INDEX = """\
import express from "express";

const app = express();

// [ANCHOR:MIDDLEWARE]

// [ANCHOR:ROUTES]

app.listen(3000);
"""

ADMIN_LAYOUT = """\
const navItems = [
  // [ANCHOR:NAV_ITEMS]
];

export default navItems;
"""

PACKAGE_JSON = {
    "name": "host",
    "dependencies": {"express": "^4.18.0"},
    "devDependencies": {"typescript": "^5.0.0"},
}


def make_manifest(**overrides) -> dict:
    """A valid payments manifest touching both template files."""
    data = {
        "name": "payments",
        "version": "1.0.0",
        "description": "Stripe payments",
        "dependencies": {"npm": ["stripe@^14.0.0"]},
        "injections": [
            {
                "file": "apps/api/src/index.ts",
                "anchor": "// [ANCHOR:ROUTES]",
                "code": 'app.use("/payments", paymentsRouter);',
            },
            {
                "file": "apps/admin/app/layout.tsx",
                "anchor": "// [ANCHOR:NAV_ITEMS]",
                "code": '  { href: "/payments", label: "Payments" },',
            },
        ],
        "env": [
            {"key": "STRIPE_SECRET_KEY", "required": True, "example": "sk_test_xxx"},
            {"key": "STRIPE_WEBHOOK_SECRET", "required": False},
        ],
    }
    data.update(overrides)
    return data


def write_manifest(path: Path, data: dict) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2), encoding="utf-8")
    return path


@pytest.fixture
def project(tmp_path: Path) -> ProjectPaths:
    """A host project laid out like the template, with all default anchors."""
    api = tmp_path / "apps" / "api" / "src" / "index.ts"
    api.parent.mkdir(parents=True)
    api.write_text(API_INDEX, encoding="utf-8")

    admin = tmp_path / "apps" / "admin" / "app" / "layout.tsx"
    admin.parent.mkdir(parents=True)
    admin.write_text(ADMIN_LAYOUT, encoding="utf-8")

    (tmp_path / "package.json").write_text(json.dumps(PACKAGE_JSON, indent=2), encoding="utf-8")
    return ProjectPaths.for_root(tmp_path)


@pytest.fixture
def manifest_file(project: ProjectPaths) -> Path:
    """Path of a valid payments manifest inside the project."""
    return write_manifest(project.root / "modules" / "payments" / "module.json", make_manifest())
