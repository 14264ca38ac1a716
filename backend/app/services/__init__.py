"""Lazy service exports so importing the package does not pull in the AI SDKs or redis."""

__all__ = [
    "cache_service",
    "AIGateway",
    "PromptService",
]


def __getattr__(name: str):
    if name == "cache_service":
        from app.services.cache_service import cache_service

        return cache_service
    if name == "AIGateway":
        from app.services.ai_gateway import AIGateway

        return AIGateway
    if name == "PromptService":
        from app.services.prompt_service import PromptService

        return PromptService
    raise AttributeError(name)
