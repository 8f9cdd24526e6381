import colorsys
import io
import math
from dataclasses import dataclass
from typing import List, Tuple

from PIL import Image

from .colors import ColorSample, rgb_to_hex
from .errors import PaletteExtractionError


# Pixels with alpha at or below this are treated as transparent background.
ALPHA_THRESHOLD = 250


@dataclass
class _Cluster:
    red: float
    green: float
    blue: float
    count: int

    def absorb(self, red: float, green: float, blue: float, count: int) -> None:
        total = self.count + count
        self.red = (self.red * self.count + red * count) / total
        self.green = (self.green * self.count + green * count) / total
        self.blue = (self.blue * self.count + blue * count) / total
        self.count = total

    def hls(self) -> Tuple[float, float, float]:
        return colorsys.rgb_to_hls(self.red / 255, self.green / 255, self.blue / 255)


@dataclass(frozen=True)
class ColorSampler:
    """
    Pillow-backed colour sampling for logo images.

    Parameters are fixed per deployment and mirror a dense sampling pass:
    up to `pixels` pixels are inspected, colours within `distance` of each
    other (normalised RGB) are grouped, then groups closer than the
    hue/saturation/lightness distances are merged.
    """

    pixels: int = 64000
    distance: float = 0.2
    hue_distance: float = 0.05
    saturation_distance: float = 0.2
    lightness_distance: float = 0.2

    def sample(self, data: bytes, content_type: str) -> List[ColorSample]:
        mime = content_type.split(";", 1)[0].strip().lower()
        if not mime.startswith("image/") or mime == "image/svg+xml":
            raise PaletteExtractionError(f"Unsupported logo content type: {mime or 'unknown'}")

        try:
            img = Image.open(io.BytesIO(data))
            img.load()
        except (OSError, ValueError, Image.DecompressionBombError) as exc:
            raise PaletteExtractionError(f"Could not decode logo image: {exc}") from exc

        img = self._downscale(img.convert("RGBA"))
        colors = img.getcolors(maxcolors=img.width * img.height) or []
        opaque = [(count, rgba[:3]) for count, rgba in colors if rgba[3] > ALPHA_THRESHOLD]
        total = sum(count for count, _ in opaque)
        if total == 0:
            return []

        clusters = self._merge_by_hsl(self._group_by_distance(opaque))
        samples = [self._to_sample(cluster, total) for cluster in clusters]
        samples.sort(key=lambda s: s.area, reverse=True)
        return samples

    def _downscale(self, img: Image.Image) -> Image.Image:
        width, height = img.size
        if width * height <= self.pixels:
            return img
        scale = math.sqrt(self.pixels / (width * height))
        size = (max(1, int(width * scale)), max(1, int(height * scale)))
        # Nearest keeps original colours; resampling filters would invent blends.
        return img.resize(size, Image.NEAREST)

    def _group_by_distance(self, colors: List[Tuple[int, Tuple[int, int, int]]]) -> List[_Cluster]:
        max_distance = self.distance * 255 * math.sqrt(3)
        clusters: List[_Cluster] = []
        for count, (red, green, blue) in sorted(colors, key=lambda c: (-c[0], c[1])):
            for cluster in clusters:
                gap = math.sqrt(
                    (cluster.red - red) ** 2
                    + (cluster.green - green) ** 2
                    + (cluster.blue - blue) ** 2
                )
                if gap < max_distance:
                    cluster.absorb(red, green, blue, count)
                    break
            else:
                clusters.append(_Cluster(red, green, blue, count))
        return clusters

    def _merge_by_hsl(self, clusters: List[_Cluster]) -> List[_Cluster]:
        merged: List[_Cluster] = []
        for cluster in sorted(clusters, key=lambda c: -c.count):
            hue, lightness, saturation = cluster.hls()
            for target in merged:
                t_hue, t_lightness, t_saturation = target.hls()
                hue_gap = abs(hue - t_hue)
                hue_gap = min(hue_gap, 1 - hue_gap)
                if (
                    hue_gap < self.hue_distance
                    and abs(saturation - t_saturation) < self.saturation_distance
                    and abs(lightness - t_lightness) < self.lightness_distance
                ):
                    target.absorb(cluster.red, cluster.green, cluster.blue, cluster.count)
                    break
            else:
                merged.append(cluster)
        return merged

    @staticmethod
    def _to_sample(cluster: _Cluster, total: int) -> ColorSample:
        red, green, blue = (int(round(c)) for c in (cluster.red, cluster.green, cluster.blue))
        hue, lightness, saturation = colorsys.rgb_to_hls(red / 255, green / 255, blue / 255)
        return ColorSample(
            hex=rgb_to_hex(red, green, blue),
            red=red,
            green=green,
            blue=blue,
            area=cluster.count / total,
            hue=hue,
            saturation=saturation,
            lightness=lightness,
            # Vividness: saturated mid-tones score highest.
            intensity=saturation * (1 - abs(2 * lightness - 1)),
        )
