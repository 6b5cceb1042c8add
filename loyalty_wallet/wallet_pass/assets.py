# loyalty_wallet/wallet_pass/assets.py

"""
Asset Generator

Renders the icon and logo images bundled into every pass. Works purely in
memory: the business logo arrives as already-resolved bytes, and any
rendering failure degrades to a 1x1 placeholder rather than dropping files.
"""

import base64
import logging
from io import BytesIO
from typing import Dict, Optional, Tuple

from PIL import Image

from .formatting import hex_to_tuple

logger = logging.getLogger(__name__)

ASSET_SIZES: Dict[str, Tuple[int, int]] = {
    'icon.png': (29, 29),
    'icon@2x.png': (58, 58),
    'icon@3x.png': (87, 87),
    'logo.png': (160, 50),
    'logo@2x.png': (320, 100),
    'logo@3x.png': (480, 150),
}

PLACEHOLDER_PNG = base64.b64decode(
    'iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR42mP8/5+hHgAHggJ/PchI7wAAAABJRU5ErkJggg=='
)

DEFAULT_BRAND_COLOR = (16, 185, 129)


class AssetGenerator:
    """Produces the fixed set of pass images for one brand color."""

    def __init__(self, brand_color: Optional[str] = None):
        self.brand_color = hex_to_tuple(brand_color) or DEFAULT_BRAND_COLOR

    def generate(self, logo_bytes: Optional[bytes] = None) -> Dict[str, bytes]:
        """
        Render every required asset.

        Args:
            logo_bytes: Business logo image data (any Pillow-readable format)

        Returns:
            Mapping of asset file name to PNG bytes. Always contains every
            name in ASSET_SIZES.
        """
        try:
            logo = self._load_logo(logo_bytes) if logo_bytes else None
            return {name: self._render(size, logo) for name, size in ASSET_SIZES.items()}
        except Exception as e:
            logger.warning(f"Asset rendering failed, using placeholders: {e}")
            return self.placeholders()

    @staticmethod
    def placeholders() -> Dict[str, bytes]:
        return {name: PLACEHOLDER_PNG for name in ASSET_SIZES}

    def _load_logo(self, logo_bytes: bytes) -> Image.Image:
        img = Image.open(BytesIO(logo_bytes))
        img.load()

        # Flatten transparency onto the brand color
        if img.mode in ('RGBA', 'LA', 'P'):
            background = Image.new('RGB', img.size, self.brand_color)
            if img.mode != 'RGBA':
                img = img.convert('RGBA')
            background.paste(img, mask=img.split()[-1])
            img = background
        elif img.mode != 'RGB':
            img = img.convert('RGB')
        return img

    def _render(self, size: Tuple[int, int], logo: Optional[Image.Image]) -> bytes:
        canvas = Image.new('RGB', size, self.brand_color)
        if logo is not None:
            fitted = logo.copy()
            fitted.thumbnail(size, Image.Resampling.LANCZOS)
            offset = ((size[0] - fitted.width) // 2, (size[1] - fitted.height) // 2)
            canvas.paste(fitted, offset)

        output = BytesIO()
        canvas.save(output, format='PNG', optimize=True)
        return output.getvalue()
