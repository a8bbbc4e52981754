#!/usr/bin/env python
"""
Generate synthetic sample pages for trying the scanocr pipeline.

This script creates one page per quality tier:
- A clean scan (HIGH)
- A dim photo of a page (MEDIUM)
- A low contrast, noisy photo (LOW)
- A blank page

Usage:
    python examples/generate_samples.py
    scanocr --input examples/sample_pages/sample_low.png
"""

import numpy as np
from pathlib import Path

PARAGRAPH = [
    "Offline OCR turns photographed pages into text.",
    "Each page is resized, converted to grayscale and",
    "contrast-stretched before recognition. Poor photos",
    "are also binarized with Otsu's method and cleaned",
    "with a small median filter.",
    "Invoice 0010 dated 2024-03-15, total 1,250.00",
]


def draw_page(background: int, ink: int) -> np.ndarray:
    """Draw the sample paragraph in the given gray levels."""
    import cv2

    img = np.full((1100, 850, 3), background, dtype=np.uint8)

    cv2.putText(img, "Sample Document", (50, 90),
                cv2.FONT_HERSHEY_DUPLEX, 1.4, (ink, ink, ink), 2)

    y = 180
    for line in PARAGRAPH * 3:
        cv2.putText(img, line, (50, y), cv2.FONT_HERSHEY_SIMPLEX, 0.8, (ink, ink, ink), 2)
        y += 45

    return img


def create_clean_page() -> np.ndarray:
    return draw_page(background=255, ink=0)


def create_dim_page() -> np.ndarray:
    return draw_page(background=170, ink=60)


def create_low_quality_page() -> np.ndarray:
    """Gray text on a gray background with sensor noise."""
    img = draw_page(background=150, ink=115)
    rng = np.random.default_rng(7)
    noise = rng.normal(0, 6, img.shape)
    return np.clip(img.astype(np.float32) + noise, 0, 255).astype(np.uint8)


def create_blank_page() -> np.ndarray:
    return np.full((1100, 850, 3), 250, dtype=np.uint8)


def main():
    import cv2
    from scanocr.utils.quality import detect_quality, is_likely_empty

    samples_dir = Path(__file__).parent / "sample_pages"
    samples_dir.mkdir(exist_ok=True)

    samples = [
        ("sample_clean", create_clean_page()),
        ("sample_dim", create_dim_page()),
        ("sample_low", create_low_quality_page()),
        ("sample_blank", create_blank_page()),
    ]

    for name, img in samples:
        img_path = samples_dir / f"{name}.png"
        cv2.imwrite(str(img_path), img)
        print(f"Created: {img_path} (quality={detect_quality(img).name}, blank={is_likely_empty(img)})")

    print("\nSample generation complete!")


if __name__ == "__main__":
    main()
