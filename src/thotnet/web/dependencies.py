"""FastAPI dependencies handing the service container to routes."""

from __future__ import annotations

from fastapi import Request

from thotnet.db.database import Database
from thotnet.events.bus import EventBus
from thotnet.llm.chain import ProviderChain
from thotnet.web.services import Services


def get_services(request: Request) -> Services:
    return request.app.state.services


def get_db(request: Request) -> Database:
    return get_services(request).db


def get_bus(request: Request) -> EventBus:
    return get_services(request).bus


def get_llm(request: Request) -> ProviderChain:
    return get_services(request).llm
