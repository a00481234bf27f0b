"""PDF transformation utilities for text rendering matrices."""

import math
from dataclasses import dataclass
from typing import Sequence

import numpy as np


@dataclass
class Transformation:
    """Rotation (degrees), scale and translation recovered from a text matrix."""
    rotation: float
    scaleX: float
    scaleY: float
    translateX: float
    translateY: float


def decompose_ctm(ctm: Sequence[float]) -> Transformation:
    """Decompose a matrix into rotation, scale and translation.

    Args:
        ctm: 6-element matrix [a, b, c, d, e, f]

    Returns:
        Transformation with rotation in degrees (counter-clockwise, -180..180].
    """
    a, b, c, d, e, f = ctm

    # arctan2 for proper quadrant handling
    rotation_degrees = float(np.degrees(np.arctan2(b, a)))

    scaleX = float(np.hypot(a, b))
    scaleY = float(np.hypot(c, d))

    # Reflection (negative determinant) flips one of the scales
    if a * d - b * c < 0:
        scaleX = -scaleX

    return Transformation(
        rotation=rotation_degrees,
        scaleX=scaleX,
        scaleY=scaleY,
        translateX=e,
        translateY=f,
    )


def rotation_degrees(ctm: Sequence[float]) -> float:
    """Absolute deviation from upright text, folded into 0..180."""
    return abs(decompose_ctm(ctm).rotation)


def is_rotated(ctm: Sequence[float], threshold_degrees: float) -> bool:
    return rotation_degrees(ctm) > threshold_degrees


def vertical_scale(ctm: Sequence[float]) -> float:
    """Length of the transformed unit Y vector, i.e. how tall 1 unit of font size renders."""
    return math.hypot(ctm[2], ctm[3])
