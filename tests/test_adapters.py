"""
Provider Adapter Tests

Tests for the per-provider threshold policies and the shared adapter flow.

Test Categories:
1. TestLocalNsfwPolicy - Local model thresholds (15/5/20)
2. TestGoogleVisionPolicy - SafeSearch likelihood mapping
3. TestRekognitionPolicy - Keyword buckets and label thresholds
4. TestAdapterFlow - moderate_image(): enable check, fetch, classify, evaluate
"""

import pytest

from photoguard.errors import ClassifierError, ImageFetchError, ProviderDisabledError
from photoguard.moderation.models import (
    ModerationLabel,
    ModerationStatus,
    NsfwClass,
    NsfwPrediction,
    RiskCategory,
    RiskLevel,
    SafeSearchAnnotation,
)
from photoguard.providers import (
    AWSRekognitionAdapter,
    GoogleVisionAdapter,
    LocalNsfwAdapter,
    categorize,
)


def nsfw(porn=0.0, hentai=0.0, sexy=0.0, drawing=0.0):
    neutral = max(0.0, 1.0 - porn - hentai - sexy - drawing)
    return [
        NsfwPrediction(NsfwClass.PORN, porn),
        NsfwPrediction(NsfwClass.HENTAI, hentai),
        NsfwPrediction(NsfwClass.SEXY, sexy),
        NsfwPrediction(NsfwClass.DRAWING, drawing),
        NsfwPrediction(NsfwClass.NEUTRAL, neutral),
    ]


def safe_search(adult="VERY_UNLIKELY", violence="VERY_UNLIKELY", racy="VERY_UNLIKELY", medical="VERY_UNLIKELY"):
    return SafeSearchAnnotation(
        adult=RiskLevel(adult),
        violence=RiskLevel(violence),
        racy=RiskLevel(racy),
        medical=RiskLevel(medical),
    )


@pytest.fixture
def local_adapter(fake_classifier, fake_image_store):
    return LocalNsfwAdapter(fake_classifier(), fake_image_store)


@pytest.fixture
def google_adapter(fake_classifier, fake_image_store):
    return GoogleVisionAdapter(fake_classifier(), fake_image_store)


@pytest.fixture
def aws_adapter(fake_classifier, fake_image_store):
    return AWSRekognitionAdapter(fake_classifier(), fake_image_store)


class TestLocalNsfwPolicy:
    """Thresholds for the offline model."""

    def test_clean_image_approved(self, local_adapter):
        """Mostly-neutral predictions are approved with no reasons."""
        result = local_adapter.evaluate(nsfw(porn=0.01, sexy=0.02, drawing=0.1))

        assert result.status == ModerationStatus.APPROVED
        assert result.reasons == ()
        assert result.provider == "LOCAL_NSFW"

    def test_explicit_content_rejected(self, local_adapter):
        """Porn + Hentai above 15% rejects with an 'explicit' reason."""
        result = local_adapter.evaluate(nsfw(porn=0.6, hentai=0.1))

        assert result.status == ModerationStatus.REJECTED
        assert "explicit" in result.reasons[0].lower()
        assert result.scores["adult"] == pytest.approx(70.0)

    def test_hentai_counts_as_adult(self, local_adapter):
        """Hentai alone contributes to the adult score."""
        result = local_adapter.evaluate(nsfw(hentai=0.3))

        assert result.status == ModerationStatus.REJECTED

    def test_possible_explicit_needs_review(self, local_adapter):
        """Adult between 5% and 15% needs review."""
        result = local_adapter.evaluate(nsfw(porn=0.10))

        assert result.status == ModerationStatus.NEEDS_REVIEW
        assert result.reasons[0].startswith("Possible explicit content")

    def test_racy_needs_review(self, local_adapter):
        """Sexy above 20% needs review."""
        result = local_adapter.evaluate(nsfw(sexy=0.4))

        assert result.status == ModerationStatus.NEEDS_REVIEW
        assert result.reasons[0].startswith("Suggestive content detected")
        assert result.scores["racy"] == pytest.approx(40.0)

    def test_racy_never_rejects(self, local_adapter):
        """Even a fully suggestive image is review, not rejection."""
        result = local_adapter.evaluate(nsfw(sexy=0.99))

        assert result.status == ModerationStatus.NEEDS_REVIEW

    def test_racy_reason_skipped_when_rejected(self, local_adapter):
        """A rejected image does not collect a suggestive reason."""
        result = local_adapter.evaluate(nsfw(porn=0.5, sexy=0.4))

        assert result.status == ModerationStatus.REJECTED
        assert len(result.reasons) == 1

    def test_confidence_is_inverse_of_worst_score(self, local_adapter):
        """Confidence = 100 - max(adult, racy), rounded."""
        result = local_adapter.evaluate(nsfw(porn=0.02, sexy=0.3))

        assert result.confidence == 70

    def test_details_list_predictions(self, local_adapter):
        """Details carry each class as a percentage."""
        result = local_adapter.evaluate(nsfw(porn=0.5))

        classes = {p["class"]: p["probability"] for p in result.details["predictions"]}
        assert classes["Porn"] == 50.0


class TestGoogleVisionPolicy:
    """SafeSearch likelihood mapping."""

    def test_all_unlikely_approved(self, google_adapter):
        """Low likelihoods everywhere are approved."""
        result = google_adapter.evaluate(safe_search(racy="UNLIKELY"))

        assert result.status == ModerationStatus.APPROVED
        assert result.confidence == 90  # 100 - (5 + 5 + 20) / 3

    @pytest.mark.parametrize("level", ["LIKELY", "VERY_LIKELY"])
    def test_adult_likely_rejected(self, google_adapter, level):
        """Adult LIKELY or above rejects."""
        result = google_adapter.evaluate(safe_search(adult=level))

        assert result.status == ModerationStatus.REJECTED
        assert result.reasons[0] == "Adult content detected"

    def test_adult_possible_needs_review(self, google_adapter):
        result = google_adapter.evaluate(safe_search(adult="POSSIBLE"))

        assert result.status == ModerationStatus.NEEDS_REVIEW
        assert result.reasons == ("Possible adult content",)

    def test_violence_likely_rejected(self, google_adapter):
        result = google_adapter.evaluate(safe_search(violence="VERY_LIKELY"))

        assert result.status == ModerationStatus.REJECTED
        assert result.reasons == ("Violent content detected",)

    def test_violence_possible_does_not_downgrade_rejection(self, google_adapter):
        """A possible-violence finding keeps an adult rejection."""
        result = google_adapter.evaluate(safe_search(adult="LIKELY", violence="POSSIBLE"))

        assert result.status == ModerationStatus.REJECTED
        assert result.reasons == ("Adult content detected", "Possible violent content")

    @pytest.mark.parametrize("level", ["LIKELY", "VERY_LIKELY"])
    def test_racy_never_rejects(self, google_adapter, level):
        """Racy content is reviewed, never rejected."""
        result = google_adapter.evaluate(safe_search(racy=level))

        assert result.status == ModerationStatus.NEEDS_REVIEW
        assert result.reasons == ("Suggestive content detected",)

    def test_medical_scored_but_not_deciding(self, google_adapter):
        """Medical likelihood is reported but does not change the verdict."""
        result = google_adapter.evaluate(safe_search(medical="VERY_LIKELY"))

        assert result.status == ModerationStatus.APPROVED
        assert result.scores["medical"] == 95

    def test_unknown_scores_zero(self, google_adapter):
        """UNKNOWN maps to score 0 and is treated as no risk."""
        result = google_adapter.evaluate(
            safe_search(adult="UNKNOWN", violence="UNKNOWN", racy="UNKNOWN")
        )

        assert result.status == ModerationStatus.APPROVED
        assert result.scores["adult"] == 0
        assert result.confidence == 100

    def test_confidence_uses_average(self, google_adapter):
        """Confidence is 100 minus the mean of adult, violence and racy."""
        result = google_adapter.evaluate(safe_search(adult="LIKELY", racy="LIKELY"))

        assert result.confidence == 45  # 100 - (80 + 5 + 80) / 3


class TestRekognitionPolicy:
    """Keyword buckets and label thresholds."""

    def test_no_labels_approved(self, aws_adapter):
        result = aws_adapter.evaluate([])

        assert result.status == ModerationStatus.APPROVED
        assert result.confidence == 100

    def test_explicit_nudity_rejected(self, aws_adapter):
        """High-confidence adult label rejects and names the label."""
        result = aws_adapter.evaluate([ModerationLabel("Explicit Nudity", 95.0)])

        assert result.status == ModerationStatus.REJECTED
        assert result.reasons == ("Adult content: Explicit Nudity",)
        assert result.confidence == 5

    def test_adult_label_medium_confidence_review(self, aws_adapter):
        result = aws_adapter.evaluate([ModerationLabel("Sexual Activity", 70.0)])

        assert result.status == ModerationStatus.NEEDS_REVIEW
        assert result.reasons == ("Possible adult content: Sexual Activity",)

    def test_violence_label_rejected(self, aws_adapter):
        result = aws_adapter.evaluate([ModerationLabel("Weapon Violence", 88.0)])

        assert result.status == ModerationStatus.REJECTED
        assert result.reasons == ("Violent content: Weapon Violence",)

    def test_suggestive_never_rejects(self, aws_adapter):
        """A racy label is reviewed even at full confidence."""
        result = aws_adapter.evaluate([ModerationLabel("Suggestive", 99.0)])

        assert result.status == ModerationStatus.NEEDS_REVIEW
        assert result.reasons == ("Suggestive content: Suggestive",)

    def test_partial_nudity_is_racy(self, aws_adapter):
        """'Partial Nudity' falls in the racy bucket, not the adult one."""
        result = aws_adapter.evaluate([ModerationLabel("Partial Nudity", 90.0, "Suggestive")])

        assert result.status == ModerationStatus.NEEDS_REVIEW
        assert result.scores["adult"] == 0.0
        assert result.scores["racy"] == 90.0

    def test_parent_name_used_when_name_unmatched(self, aws_adapter):
        """An unmatched label name falls back to its parent category."""
        result = aws_adapter.evaluate(
            [ModerationLabel("Exposed Male Genitalia", 92.0, "Explicit Nudity")]
        )

        assert result.status == ModerationStatus.REJECTED

    def test_low_confidence_labels_ignored(self, aws_adapter):
        """Labels at or below 60 only contribute to scores."""
        result = aws_adapter.evaluate([ModerationLabel("Explicit Nudity", 55.0)])

        assert result.status == ModerationStatus.APPROVED
        assert result.scores["adult"] == 55.0
        assert result.confidence == 45

    def test_confidence_uses_worst_bucket(self, aws_adapter):
        """Confidence is 100 minus the single highest bucket score."""
        result = aws_adapter.evaluate(
            [ModerationLabel("Suggestive", 65.0), ModerationLabel("Blood", 30.0)]
        )

        assert result.confidence == 35

    def test_bucket_scores_keep_maximum(self, aws_adapter):
        result = aws_adapter.evaluate(
            [ModerationLabel("Nudity", 62.0), ModerationLabel("Explicit Nudity", 75.0)]
        )

        assert result.scores["adult"] == 75.0

    def test_categorize_case_insensitive(self):
        assert categorize(ModerationLabel("GORE", 80.0)) == {RiskCategory.VIOLENCE}
        assert categorize(ModerationLabel("Alcohol", 80.0)) == set()


class TestAdapterFlow:
    """Shared moderate_image() behaviour."""

    @pytest.mark.asyncio
    async def test_moderate_fetches_and_classifies(self, fake_classifier, fake_image_store):
        """Bytes from the image store reach the classifier."""
        classifier = fake_classifier(prediction=nsfw(porn=0.9))
        adapter = LocalNsfwAdapter(classifier, fake_image_store)

        result = await adapter.moderate_image("uploads/photos/a.jpg")

        fake_image_store.fetch_image.assert_awaited_once_with("uploads/photos/a.jpg")
        assert classifier.calls == [fake_image_store.data]
        assert result.status == ModerationStatus.REJECTED

    @pytest.mark.asyncio
    async def test_disabled_adapter_raises(self, fake_classifier, fake_image_store):
        """A disabled provider raises without touching storage."""
        adapter = GoogleVisionAdapter(fake_classifier(), fake_image_store, enabled=False)

        with pytest.raises(ProviderDisabledError):
            await adapter.moderate_image("a.jpg")

        fake_image_store.fetch_image.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unavailable_classifier_disables_adapter(self, fake_classifier, fake_image_store):
        """An enabled provider whose backend is unavailable reports disabled."""
        adapter = AWSRekognitionAdapter(fake_classifier(available=False), fake_image_store)

        assert adapter.is_enabled() is False
        assert adapter.describe() == {"enabled": False, "name": "AWS Rekognition"}

    @pytest.mark.asyncio
    async def test_classifier_error_propagates(self, fake_classifier, fake_image_store):
        """Backend failures are raised, never turned into a verdict."""
        classifier = fake_classifier(error=ClassifierError("GOOGLE_VISION", "quota exceeded"))
        adapter = GoogleVisionAdapter(classifier, fake_image_store)

        with pytest.raises(ClassifierError, match="quota exceeded"):
            await adapter.moderate_image("a.jpg")

    @pytest.mark.asyncio
    async def test_fetch_error_propagates(self, fake_classifier, fake_image_store):
        fake_image_store.fetch_image.side_effect = ImageFetchError("a.jpg", "not found")
        adapter = LocalNsfwAdapter(fake_classifier(), fake_image_store)

        with pytest.raises(ImageFetchError):
            await adapter.moderate_image("a.jpg")

    def test_display_names(self, local_adapter, google_adapter, aws_adapter):
        assert local_adapter.display_name == "Local NSFW model"
        assert google_adapter.display_name == "Google Cloud Vision API"
        assert aws_adapter.display_name == "AWS Rekognition"
