"""Load a portal fixture (YAML) into an entity store.

Records reference each other through local ``key`` names rather than store
ids, which are only known after insertion::

    clients:
      - key: acme
        companyName: Acme Corp
    projects:
      - key: portal
        client: acme
        name: Customer portal
    users:
      - id: subject-123
        name: Ana
        role: CLIENT
        client: acme
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml

from status_hub.entity_store import EntityStore

logger = logging.getLogger(__name__)

SEED_ACTOR = "seed"
SEED_SECTIONS = ("clients", "projects", "logs", "change_requests", "leads", "users")


def load_seed(path: Path) -> dict[str, Any]:
    if not path.exists():
        raise FileNotFoundError(f"Seed file not found: {path}")
    data = yaml.safe_load(path.read_text()) or {}
    if not isinstance(data, dict):
        raise ValueError("seed_root_must_be_mapping")
    unknown = sorted(set(data) - set(SEED_SECTIONS))
    if unknown:
        raise ValueError(f"unknown_seed_sections:{','.join(unknown)}")
    return data


def _resolve(keys: dict[str, str], kind: str, ref: Any) -> str:
    if ref not in keys:
        raise ValueError(f"unknown_seed_{kind}:{ref}")
    return keys[ref]


def apply_seed(
    entities: EntityStore, data: dict[str, Any], actor: str = SEED_ACTOR
) -> dict[str, int]:
    """Create every record in dependency order; returns counts per section."""

    client_keys: dict[str, str] = {}
    project_keys: dict[str, str] = {}
    counts = {section: 0 for section in SEED_SECTIONS}

    for row in data.get("clients") or []:
        fields = dict(row)
        key = fields.pop("key", None)
        client_id = entities.create_client(fields, actor=actor)
        if key:
            client_keys[key] = client_id
        counts["clients"] += 1

    for row in data.get("projects") or []:
        fields = dict(row)
        key = fields.pop("key", None)
        client_ref = fields.pop("client", None)
        if client_ref is not None:
            fields["clientId"] = _resolve(client_keys, "client", client_ref)
        project_id = entities.create_project(fields, actor=actor)
        if key:
            project_keys[key] = project_id
        counts["projects"] += 1

    for row in data.get("logs") or []:
        fields = dict(row)
        fields["projectId"] = _resolve(project_keys, "project", fields.pop("project", None))
        author = fields.pop("createdBy", actor)
        entities.add_log(fields, actor=author)
        counts["logs"] += 1

    for row in data.get("change_requests") or []:
        fields = dict(row)
        project_id = _resolve(project_keys, "project", fields.pop("project", None))
        project = entities.get_project(project_id)
        if project is None or project.client_id is None:
            raise ValueError(f"seed_change_request_needs_client_project:{project_id}")
        fields.update(projectId=project_id, clientId=project.client_id)
        entities.create_change_request(fields, actor=actor)
        counts["change_requests"] += 1

    for row in data.get("leads") or []:
        entities.create_lead(dict(row), actor=actor)
        counts["leads"] += 1

    for row in data.get("users") or []:
        fields = dict(row)
        user_id = fields.pop("id", None)
        if not user_id:
            raise ValueError("seed_user_requires_id")
        client_ref = fields.pop("client", None)
        if client_ref is not None:
            fields["clientId"] = _resolve(client_keys, "client", client_ref)
        entities.save_user(str(user_id), fields, actor=actor)
        counts["users"] += 1

    logger.info("Seed applied: %s", counts)
    return counts
