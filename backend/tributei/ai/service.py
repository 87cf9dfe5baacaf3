import logging
from typing import Optional

import google.generativeai as genai
from google.api_core import exceptions as google_exceptions
from tenacity import retry, stop_after_attempt, wait_exponential, retry_if_exception

from tributei.config import settings
from tributei.ai.exceptions import InsightServiceError
from tributei.taxes.schemas import TaxBreakdown

logger = logging.getLogger(__name__)

MISSING_KEY_MESSAGE = (
    "Chave de API do Gemini não configurada. Defina GEMINI_API_KEY no ambiente "
    "para habilitar os insights gerados por IA."
)
AUTH_ERROR_MESSAGE = "Erro de autenticação: verifique se a GEMINI_API_KEY está correta."
GENERIC_ERROR_MESSAGE = (
    "Houve um problema ao consultar a IA. Por favor, tente novamente ou verifique as configurações."
)
EMPTY_RESPONSE_MESSAGE = "Não foi possível gerar uma visão detalhada no momento."


def _should_retry_gemini_error(exception: Exception) -> bool:
    """
    Sprawdza, czy błąd Gemini powinien być retryowany.

    NIE retryujemy:
    - InvalidArgument (błędne żądanie)
    - PermissionDenied / Unauthenticated (brak uprawnień)

    Retryujemy:
    - ResourceExhausted (429 Too Many Requests)
    - ServiceUnavailable (503)
    - InternalServerError (500)
    - DeadlineExceeded (Timeout)
    """
    if isinstance(exception, (
        google_exceptions.ResourceExhausted,
        google_exceptions.ServiceUnavailable,
        google_exceptions.InternalServerError,
        google_exceptions.DeadlineExceeded,
        google_exceptions.Aborted,
    )):
        logger.warning(f"Gemini API error (will retry): {str(exception)}")
        return True

    return False


class InsightGenerator:
    """
    Generative fallback for tax insights ("Insight Tributei").

    Used only when no curated insight exists for the classification code.
    Never raises: every failure becomes a user-displayable fallback text.
    """

    def __init__(self, model: Optional[genai.GenerativeModel] = None):
        """
        Args:
            model: Configured Gemini model, or None when no API key is set
        """
        self.model = model

    def _build_prompt(
        self,
        product_name: str,
        category: str,
        ncm: str,
        taxes: Optional[TaxBreakdown] = None
    ) -> str:
        tax_context = ""
        if taxes:
            tax_context = f"""
Detalhes Tributários Atuais (Simulação):
- IBS: {taxes.ibs.rate * 100:.2f}% (CST: {taxes.ibs.cst})
- CBS: {taxes.cbs.rate * 100:.2f}% (CST: {taxes.cbs.cst})
- Alíquota Final Combinada: {taxes.combined_final_rate * 100:.2f}%
- Cesta Básica: {"Sim" if taxes.is_basic_basket else "Não"}
"""

        return f"""Atue como um especialista em Reforma Tributária Brasileira.
Produto: {product_name}
Categoria: {category}
NCM: {ncm}
{tax_context}
Forneça um "Insight Tributei":
1. Traga um fato interessante ou relevante sobre como a Reforma Tributária (IBS/CBS) afeta especificamente este tipo de produto ou sua categoria.
2. Seja conciso (máximo 3 frases).
3. Use um tom profissional e informativo.
"""

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_exception(_should_retry_gemini_error),
        reraise=True
    )
    async def _call_gemini_with_retry(self, prompt: str) -> str:
        """
        Wywołuje Gemini API z automatycznym retry.

        Raises:
            InsightServiceError: Jeśli Gemini zwróciło pustą odpowiedź
        """
        response = await self.model.generate_content_async(
            prompt,
            generation_config=genai.GenerationConfig(
                temperature=settings.INSIGHT_TEMPERATURE,
            ),
            request_options={"timeout": settings.GEMINI_TIMEOUT},
        )

        if not response.text:
            raise InsightServiceError("Gemini zwróciło pustą odpowiedź")

        return response.text.strip()

    async def generate_insight(
        self,
        product_name: str,
        category: str,
        ncm: str,
        taxes: Optional[TaxBreakdown] = None
    ) -> str:
        """
        Explains how the tax reform affects the product.

        Returns:
            Generated text, or a fallback message when the model is not configured
            or the API fails (never raises)
        """
        if self.model is None:
            logger.warning("Gemini: GEMINI_API_KEY not configured, returning fallback insight")
            return MISSING_KEY_MESSAGE

        prompt = self._build_prompt(product_name, category, ncm, taxes)

        try:
            logger.info(f"Gemini: requesting insight for '{product_name}' (NCM {ncm})")
            return await self._call_gemini_with_retry(prompt)
        except (google_exceptions.PermissionDenied, google_exceptions.Unauthenticated) as e:
            logger.error(f"Gemini authentication error: {str(e)}")
            return AUTH_ERROR_MESSAGE
        except InsightServiceError as e:
            logger.warning(f"Gemini insight unavailable: {str(e)}")
            return EMPTY_RESPONSE_MESSAGE
        except Exception as e:
            logger.error(f"Błąd wywołania Gemini API: {str(e)}", exc_info=True)
            return GENERIC_ERROR_MESSAGE
