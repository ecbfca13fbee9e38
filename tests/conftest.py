from typing import Callable, List

import httpx
import pytest


@pytest.fixture
def users_spec() -> dict:
    return {
        "openapi": "3.0.0",
        "info": {"title": "Users API", "version": "1.0.0"},
        "servers": [{"url": "https://api.example.com/v1/"}],
        "paths": {
            "/users/{id}": {
                "get": {
                    "summary": "Get a user",
                    "parameters": [
                        {
                            "name": "id",
                            "in": "path",
                            "required": True,
                            "schema": {"type": "string"},
                        }
                    ],
                }
            },
            "/users": {
                "post": {
                    "operationId": "createUser",
                    "description": "Create user",
                    "parameters": [
                        {
                            "name": "X-Request-Id",
                            "in": "header",
                            "schema": {"type": "string"},
                        },
                        {
                            "name": "dryRun",
                            "in": "query",
                            "schema": {"type": "boolean"},
                        },
                    ],
                    "requestBody": {
                        "required": True,
                        "content": {
                            "application/json": {
                                "schema": {"$ref": "#/components/schemas/User"}
                            }
                        },
                    },
                }
            },
        },
        "components": {
            "schemas": {
                "User": {
                    "type": "object",
                    "required": ["name"],
                    "properties": {
                        "name": {"type": "string"},
                        "age": {"type": "integer", "nullable": True},
                    },
                }
            }
        },
    }


class RecordingHandler:
    """MockTransport handler that records requests and replies with a fixed response."""

    def __init__(self, respond: Callable[[httpx.Request], httpx.Response]):
        self.respond = respond
        self.requests: List[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.respond(request)


@pytest.fixture
def recorder() -> Callable[[Callable[[httpx.Request], httpx.Response]], RecordingHandler]:
    return RecordingHandler
