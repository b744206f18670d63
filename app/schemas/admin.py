from pydantic import BaseModel
from pydantic.alias_generators import to_camel
from typing import Any, Dict, List, Optional


class AdminLoginRequest(BaseModel):
    username: str
    password: str


class AdminLoginResponse(BaseModel):
    api_key: str

    class Config:
        alias_generator = to_camel
        populate_by_name = True


class AdminStatsResponse(BaseModel):
    total_characters: int
    active_characters: int
    inactive_characters: int
    server_uptime: float
    python_version: str
    database_connection: str
    environment: str

    class Config:
        alias_generator = to_camel
        populate_by_name = True


class AdminStatusResponse(BaseModel):
    system: Dict[str, Any]
    database: Dict[str, Any]
    runtime: Dict[str, Any]
    llm: Dict[str, Any]
    timestamp: str


class ModelListResponse(BaseModel):
    models: List[str]
    count: int
    timestamp: str
    error: Optional[str] = None
