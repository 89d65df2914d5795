"""Shared Pydantic models used across Python services."""

from __future__ import annotations

from pydantic import BaseModel


class UserBase(BaseModel):
    name: str
    role: str


class User(UserBase):
    id: int


class UserList(BaseModel):
    users: list[User]
    count: int


class HealthResponse(BaseModel):
    status: str
    timestamp: int
    service: str


class InfoResponse(BaseModel):
    service: str
    version: str
    timestamp: int
    uptime: str


class ErrorResponse(BaseModel):
    error: str
