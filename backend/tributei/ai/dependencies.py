"""
Dependency Injection dla generatora insightów (Gemini).

Przykład użycia w endpoincie:
    @router.get("/insight")
    async def insight(generator: InsightGeneratorDependency):
        return await generator.generate_insight(...)
"""
from typing import Annotated

import google.generativeai as genai
from fastapi import Depends

from tributei.ai.service import InsightGenerator
from tributei.config import settings


def get_insight_generator() -> InsightGenerator:
    """
    Fabryka InsightGenerator.

    Bez GEMINI_API_KEY zwraca generator bez modelu (odpowiada tekstem fallback).
    """
    if not settings.GEMINI_API_KEY:
        return InsightGenerator(model=None)

    # Konfiguracja Gemini API (globalna dla biblioteki, ale bezpieczna w tym kontekście)
    genai.configure(api_key=settings.GEMINI_API_KEY)
    return InsightGenerator(model=genai.GenerativeModel(settings.GEMINI_MODEL))


InsightGeneratorDependency = Annotated[InsightGenerator, Depends(get_insight_generator)]
