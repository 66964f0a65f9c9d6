from __future__ import annotations

from src.quickcode.services.extraction.gateway import ExtractionGateway, extraction_gateway
from src.quickcode.services.review.service import InMemoryReviewSessionService, review_session_service


def get_extraction_gateway() -> ExtractionGateway:
    """Provide the process-wide gateway; tests override this dependency."""
    return extraction_gateway


def get_review_session_service() -> InMemoryReviewSessionService:
    return review_session_service
