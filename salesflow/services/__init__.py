"""
Service wiring.

``init_services(app)`` builds the object graph once per app from the
immutable WorkflowConfig and stores it in ``app.extensions["salesflow"]``;
blueprints reach it through ``get_services()``.

    store ─┬─ LocationHierarchyResolver ─┐
           ├─ DirectoryService ──────────┼─ NotificationChainBuilder ─┐
           │                              RoleLocationValidator        ├─ WorkflowEngine
           └──────────────── NotificationDispatcher (Messenger) ──────┘
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Callable

from flask import current_app

from salesflow.core.workflow_config import WorkflowConfig, default_workflow_config
from salesflow.integrations.messenger_gateway import build_messenger
from salesflow.services.directory_service import DirectoryService
from salesflow.services.dispatcher import NotificationDispatcher
from salesflow.services.location_hierarchy import LocationHierarchyResolver
from salesflow.services.notification_chain import NotificationChainBuilder
from salesflow.services.role_location import RoleLocationValidator
from salesflow.services.table_store import SqlTableStore
from salesflow.services.workflow_engine import WorkflowEngine

EXTENSION_KEY = "salesflow"


@dataclass
class WorkflowServices:
    config: WorkflowConfig
    store: object
    resolver: LocationHierarchyResolver
    validator: RoleLocationValidator
    directory: DirectoryService
    chain_builder: NotificationChainBuilder
    dispatcher: NotificationDispatcher
    engine: WorkflowEngine


def build_services(
    messenger,
    *,
    config: WorkflowConfig | None = None,
    store=None,
    timezone: str = "Asia/Dhaka",
    clock: Callable[[], datetime] | None = None,
) -> WorkflowServices:
    """Assemble the service graph around *messenger* and *store*."""
    config = config or default_workflow_config()
    store = store if store is not None else SqlTableStore()
    resolver = LocationHierarchyResolver(store, config.location_table)
    validator = RoleLocationValidator(config)
    directory = DirectoryService(store, config, validator, resolver)
    chain_builder = NotificationChainBuilder(config, directory, resolver, validator)
    dispatcher = NotificationDispatcher(messenger, directory)
    engine = WorkflowEngine(config, store, chain_builder, dispatcher, timezone=timezone, clock=clock)
    return WorkflowServices(config, store, resolver, validator, directory, chain_builder, dispatcher, engine)


def init_services(app, messenger=None) -> WorkflowServices:
    services = build_services(
        messenger if messenger is not None else build_messenger(app.config),
        timezone=app.config.get("WORKFLOW_TIMEZONE", "Asia/Dhaka"),
    )
    app.extensions[EXTENSION_KEY] = services
    return services


def get_services() -> WorkflowServices:
    return current_app.extensions[EXTENSION_KEY]
