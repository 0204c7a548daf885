"""Review record transformation and validation.

This module maps loosely structured review JSON into typed
``NormalizedReview`` records and decides which records are kept.
Invalid records are dropped one at a time and never abort a file.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
import math
from typing import Any, Iterable, Mapping

from core.constants import MAX_RATING, MIN_RATING, REQUIRED_REVIEW_FIELDS
from core.errors import TransformError
from core.logging_config import get_logger
from core.types import NormalizedReview, RawRecord, ReviewerInfo

_LOGGER = get_logger(__name__)


@dataclass(frozen=True)
class NormalizationResult:
    """Valid reviews from one file plus the number of dropped records."""

    reviews: list[NormalizedReview]
    dropped_count: int


def transform_review(raw: RawRecord) -> NormalizedReview:
    """Map one decoded JSON line into a review record.

    Args:
        raw: Decoded JSON value for one line.

    Returns:
        Review record with required fields possibly unset.

    Raises:
        TransformError: If the record or its ``comment`` object is missing.
    """
    if not isinstance(raw, Mapping):
        raise TransformError(
            f"Expected a JSON object per line, got {type(raw).__name__}."
        )
    comment = raw.get("comment")
    if not isinstance(comment, Mapping):
        raise TransformError("Review record has no 'comment' object.")
    reviewer_payload = comment.get("reviewerInfo")
    if not isinstance(reviewer_payload, Mapping):
        reviewer_payload = {}
    overall = raw.get("overallByProviders")
    review_date_raw = comment.get("reviewDate")
    return NormalizedReview(
        hotel_id=_as_int(raw.get("hotelId")),
        platform=_as_str(raw.get("platform")),
        hotel_name=_as_str(raw.get("hotelName")),
        hotel_review_id=_as_int(comment.get("hotelReviewId")),
        provider_id=_as_int(comment.get("providerId")),
        rating=_as_rating(comment.get("rating")),
        review_comments=_as_str(comment.get("reviewComments")),
        review_date=parse_review_date(review_date_raw),
        review_date_raw=review_date_raw,
        review_title=_as_str(comment.get("reviewTitle")),
        formatted_rating=_as_str(comment.get("formattedRating")),
        formatted_review_date=_as_str(comment.get("formattedReviewDate")),
        rating_text=_as_str(comment.get("ratingText")),
        check_in_date_month_and_year=_as_str(comment.get("checkInDateMonthAndYear")),
        encrypted_review_data=_as_str(comment.get("encryptedReviewData")),
        responder_name=_as_str(comment.get("responderName")),
        response_date_text=_as_str(comment.get("responseDateText")),
        response_translate_source=_as_str(comment.get("responseTranslateSource")),
        formatted_response_date=_as_str(comment.get("formattedResponseDate")),
        review_negatives=_as_str(comment.get("reviewNegatives")),
        review_positives=_as_str(comment.get("reviewPositives")),
        review_provider_logo=_as_str(comment.get("reviewProviderLogo")),
        review_provider_text=_as_str(comment.get("reviewProviderText")),
        translate_source=_as_str(comment.get("translateSource")),
        translate_target=_as_str(comment.get("translateTarget")),
        original_title=_as_str(comment.get("originalTitle")),
        original_comment=_as_str(comment.get("originalComment")),
        reviewer=_build_reviewer(reviewer_payload),
        overall_by_providers=tuple(overall) if isinstance(overall, list) else (),
    )


def validate_review(review: NormalizedReview) -> bool:
    """Return whether a review satisfies required-field and range rules.

    ``0`` counts as a present value; ``None`` and empty strings do not.
    """
    for field_name in REQUIRED_REVIEW_FIELDS:
        value = getattr(review, field_name)
        if field_name == "review_date":
            value = review.review_date_raw
        if value is None or value == "":
            _LOGGER.warning("review_missing_required_field", field=field_name)
            return False
    if not MIN_RATING <= review.rating <= MAX_RATING:
        _LOGGER.warning("review_rating_out_of_range", rating=review.rating)
        return False
    if review.review_date is None:
        _LOGGER.warning("review_date_invalid", review_date=str(review.review_date_raw))
        return False
    return True


def normalize_records(raw_records: Iterable[RawRecord], file_key: str) -> NormalizationResult:
    """Transform and validate records, dropping the ones that fail.

    Args:
        raw_records: Decoded JSON lines from one file.
        file_key: Originating object key, used for log context.

    Returns:
        Valid reviews and the dropped record count.
    """
    reviews: list[NormalizedReview] = []
    dropped_count = 0
    for raw in raw_records:
        try:
            review = transform_review(raw)
        except TransformError as error:
            dropped_count += 1
            _LOGGER.warning("review_transform_failed", file_key=file_key, error=str(error))
            continue
        if not validate_review(review):
            dropped_count += 1
            _LOGGER.warning(
                "invalid_review_skipped",
                file_key=file_key,
                hotel_review_id=review.hotel_review_id,
            )
            continue
        reviews.append(review)
    if dropped_count:
        _LOGGER.warning("reviews_dropped", file_key=file_key, dropped_count=dropped_count)
    return NormalizationResult(reviews=reviews, dropped_count=dropped_count)


def parse_review_date(value: Any) -> datetime | None:
    """Parse an ISO-8601 string or epoch milliseconds into a UTC datetime.

    Returns ``None`` when the value is missing or unparseable.
    """
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def _build_reviewer(payload: Mapping[str, Any]) -> ReviewerInfo:
    return ReviewerInfo(
        country_name=_as_str(payload.get("countryName")),
        display_name=_as_str(payload.get("displayMemberName")),
        flag_name=_as_str(payload.get("flagName")),
        review_group_name=_as_str(payload.get("reviewGroupName")),
        room_type_name=_as_str(payload.get("roomTypeName")),
        country_id=_as_int(payload.get("countryId")),
        length_of_stay=_as_int(payload.get("lengthOfStay")),
        review_group_id=_as_int(payload.get("reviewGroupId")),
        room_type_id=_as_int(payload.get("roomTypeId")),
        reviewed_count=_as_int(payload.get("reviewerReviewedCount")),
        is_expert_reviewer=payload.get("isExpertReviewer") is True,
        is_show_global_icon=payload.get("isShowGlobalIcon") is True,
        is_show_reviewed_count=payload.get("isShowReviewedCount") is True,
    )


def _as_rating(value: Any) -> float | None:
    """Parse a rating from a number or numeric string; NaN counts as missing."""
    if value is None or isinstance(value, bool):
        return None
    try:
        rating = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(rating):
        return None
    return rating


def _as_int(value: Any) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else None
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            return None
    return None


def _as_str(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, str):
        return value
    return str(value)
