"""Image-analysis collaborator backed by Google Cloud Vision face detection.

Cloud Vision detects faces but does not expose identity embeddings, so
:meth:`GoogleVisionAnalyzer.compare_faces` scores a pair of images by the
weaker of their average detection confidences. That number says "both images
contain a clearly detectable face", not "both images show the same person".
Every comparison is tagged with ``method="detection-confidence-proxy"`` so
report consumers can tell.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional, Protocol, Sequence

from google.cloud import vision

LOGGER = logging.getLogger(__name__)

PROXY_METHOD = "detection-confidence-proxy"
PROXY_MATCH_THRESHOLD = 0.7


class ImageAnalysisError(RuntimeError):
    """Raised when the image-analysis backend cannot process an image."""


@dataclass(slots=True)
class FaceAnnotation:
    confidence: float
    bounding_box: List[Dict[str, int]] = field(default_factory=list)
    landmarks: List[str] = field(default_factory=list)
    emotions: Dict[str, str] = field(default_factory=dict)
    headwear: Optional[str] = None
    blurred: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(slots=True)
class FaceComparison:
    match: bool
    confidence: float
    reason: str
    method: str = PROXY_METHOD

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class ImageAnalyzer(Protocol):
    """Face detection and pairwise comparison over raw image bytes."""

    async def detect_faces(self, image: bytes) -> List[FaceAnnotation]: ...

    async def compare_faces(self, image_a: bytes, image_b: bytes) -> FaceComparison: ...

    def compare_detections(
        self, faces_a: Sequence[FaceAnnotation], faces_b: Sequence[FaceAnnotation]
    ) -> FaceComparison: ...


def average_confidence(faces: Sequence[FaceAnnotation]) -> float:
    if not faces:
        return 0.0
    return sum(face.confidence for face in faces) / len(faces)


def compare_detections(faces_a: Sequence[FaceAnnotation], faces_b: Sequence[FaceAnnotation]) -> FaceComparison:
    """Score two detection sets with the confidence proxy."""

    if not faces_a or not faces_b:
        return FaceComparison(match=False, confidence=0.0, reason="No faces detected in one or both images")
    similarity = min(average_confidence(faces_a), average_confidence(faces_b))
    matched = similarity > PROXY_MATCH_THRESHOLD
    return FaceComparison(
        match=matched,
        confidence=similarity,
        reason="Faces detected with high confidence" if matched else "Low confidence face match",
    )


def _enum_name(value: Any) -> Optional[str]:
    if value is None:
        return None
    return getattr(value, "name", str(value))


class GoogleVisionAnalyzer:
    """:class:`ImageAnalyzer` on the Cloud Vision async annotator client."""

    def __init__(self, *, client: Optional[vision.ImageAnnotatorAsyncClient] = None) -> None:
        self._client = client

    @property
    def client(self) -> vision.ImageAnnotatorAsyncClient:
        # Built lazily so importing this module never needs credentials.
        if self._client is None:
            self._client = vision.ImageAnnotatorAsyncClient()
        return self._client

    async def detect_faces(self, image: bytes) -> List[FaceAnnotation]:
        request = vision.AnnotateImageRequest(
            image=vision.Image(content=image),
            features=[vision.Feature(type_=vision.Feature.Type.FACE_DETECTION)],
        )
        try:
            response = await self.client.batch_annotate_images(requests=[request])
        except Exception as exc:
            raise ImageAnalysisError(f"Face detection request failed: {exc}") from exc

        if not response.responses:
            return []
        result = response.responses[0]
        if result.error and result.error.message:
            raise ImageAnalysisError(f"Face detection failed: {result.error.message}")
        return [self._to_annotation(face) for face in result.face_annotations]

    async def compare_faces(self, image_a: bytes, image_b: bytes) -> FaceComparison:
        faces_a, faces_b = await asyncio.gather(self.detect_faces(image_a), self.detect_faces(image_b))
        return self.compare_detections(faces_a, faces_b)

    def compare_detections(
        self, faces_a: Sequence[FaceAnnotation], faces_b: Sequence[FaceAnnotation]
    ) -> FaceComparison:
        """Score faces already returned by :meth:`detect_faces` without new API calls."""

        return compare_detections(faces_a, faces_b)

    @staticmethod
    def _to_annotation(face: Any) -> FaceAnnotation:
        vertices = getattr(face.bounding_poly, "vertices", None) or []
        return FaceAnnotation(
            confidence=float(face.detection_confidence or 0.0),
            bounding_box=[{"x": vertex.x, "y": vertex.y} for vertex in vertices],
            landmarks=[_enum_name(landmark.type_) for landmark in face.landmarks],
            emotions={
                "joy": _enum_name(face.joy_likelihood),
                "sorrow": _enum_name(face.sorrow_likelihood),
                "anger": _enum_name(face.anger_likelihood),
                "surprise": _enum_name(face.surprise_likelihood),
            },
            headwear=_enum_name(face.headwear_likelihood),
            blurred=_enum_name(face.blurred_likelihood),
        )


__all__ = [
    "FaceAnnotation",
    "FaceComparison",
    "GoogleVisionAnalyzer",
    "ImageAnalysisError",
    "ImageAnalyzer",
    "PROXY_METHOD",
    "average_confidence",
    "compare_detections",
]
