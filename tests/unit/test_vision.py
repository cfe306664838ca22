"""Tests for the Cloud Vision image-analysis collaborator."""

from __future__ import annotations

from types import SimpleNamespace

import pytest

from replookup.vision import (
    PROXY_METHOD,
    FaceAnnotation,
    GoogleVisionAnalyzer,
    ImageAnalysisError,
    compare_detections,
)


def _face(confidence: float) -> SimpleNamespace:
    return SimpleNamespace(
        detection_confidence=confidence,
        bounding_poly=SimpleNamespace(vertices=[SimpleNamespace(x=1, y=2), SimpleNamespace(x=3, y=4)]),
        landmarks=[SimpleNamespace(type_=SimpleNamespace(name="LEFT_EYE"))],
        joy_likelihood=SimpleNamespace(name="LIKELY"),
        sorrow_likelihood=SimpleNamespace(name="VERY_UNLIKELY"),
        anger_likelihood=SimpleNamespace(name="VERY_UNLIKELY"),
        surprise_likelihood=SimpleNamespace(name="UNLIKELY"),
        headwear_likelihood=SimpleNamespace(name="VERY_UNLIKELY"),
        blurred_likelihood=SimpleNamespace(name="VERY_UNLIKELY"),
    )


class _FakeVisionClient:
    def __init__(self, faces_by_image, *, error_message: str = "") -> None:
        self.faces_by_image = faces_by_image
        self.error_message = error_message
        self.requests = []

    async def batch_annotate_images(self, *, requests):
        self.requests.extend(requests)
        content = requests[0].image.content
        return SimpleNamespace(
            responses=[
                SimpleNamespace(
                    error=SimpleNamespace(message=self.error_message),
                    face_annotations=self.faces_by_image.get(content, []),
                )
            ]
        )


def test_compare_detections_uses_weaker_average_confidence():
    comparison = compare_detections(
        [FaceAnnotation(confidence=0.9), FaceAnnotation(confidence=0.7)],
        [FaceAnnotation(confidence=0.95)],
    )

    assert comparison.confidence == pytest.approx(0.8)
    assert comparison.match is True
    assert comparison.method == PROXY_METHOD


def test_compare_detections_without_faces_is_zero():
    comparison = compare_detections([], [FaceAnnotation(confidence=0.99)])

    assert comparison.match is False
    assert comparison.confidence == 0.0
    assert comparison.reason == "No faces detected in one or both images"


def test_compare_detections_low_confidence_is_not_a_match():
    comparison = compare_detections([FaceAnnotation(confidence=0.65)], [FaceAnnotation(confidence=0.9)])

    assert comparison.match is False
    assert comparison.reason == "Low confidence face match"


@pytest.mark.anyio
async def test_detect_faces_maps_annotations():
    client = _FakeVisionClient({b"img": [_face(0.93)]})

    faces = await GoogleVisionAnalyzer(client=client).detect_faces(b"img")

    assert faces == [
        FaceAnnotation(
            confidence=0.93,
            bounding_box=[{"x": 1, "y": 2}, {"x": 3, "y": 4}],
            landmarks=["LEFT_EYE"],
            emotions={"joy": "LIKELY", "sorrow": "VERY_UNLIKELY", "anger": "VERY_UNLIKELY", "surprise": "UNLIKELY"},
            headwear="VERY_UNLIKELY",
            blurred="VERY_UNLIKELY",
        )
    ]


@pytest.mark.anyio
async def test_detect_faces_raises_on_api_error():
    client = _FakeVisionClient({}, error_message="Bad image data")

    with pytest.raises(ImageAnalysisError):
        await GoogleVisionAnalyzer(client=client).detect_faces(b"img")


@pytest.mark.anyio
async def test_compare_faces_detects_both_images():
    client = _FakeVisionClient({b"a": [_face(0.9)], b"b": [_face(0.75)]})

    comparison = await GoogleVisionAnalyzer(client=client).compare_faces(b"a", b"b")

    assert comparison.confidence == pytest.approx(0.75)
    assert comparison.match is True
    assert len(client.requests) == 2


def test_compare_detections_on_analyzer_issues_no_requests():
    client = _FakeVisionClient({})

    comparison = GoogleVisionAnalyzer(client=client).compare_detections(
        [FaceAnnotation(confidence=0.95)], [FaceAnnotation(confidence=0.8)]
    )

    assert comparison.confidence == pytest.approx(0.8)
    assert comparison.method == PROXY_METHOD
    assert client.requests == []
