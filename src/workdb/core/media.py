"""Media file analysis: content type, size, dimensions, duration, dominant colors"""

import json
import mimetypes
import re
import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from urllib.parse import urlparse
from xml.etree import ElementTree

from PIL import Image

from workdb.core.models import ColorPalette, Dimensions, Media
from workdb.errors import MediaAnalysisError


SVG_TYPES = {"image/svg", "image/svg+xml"}
SVG_LENGTH_RE = re.compile(r'^\s*([0-9.]+)\s*(px)?\s*$')
COLOR_SAMPLE_SIZE = (64, 64)


def is_url(source: str) -> bool:
    """Whether an embed source points to an online resource."""
    parsed = urlparse(source)
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def _dimensions(width: float, height: float) -> Dimensions:
    ratio = width / height if height else 0.0
    return Dimensions(width=int(width), height=int(height), aspect_ratio=round(ratio, 6))


@dataclass
class MediaFacts:
    """What analyzing a local media file yields, independently of how it is embedded."""
    content_type: str
    size: int = 0
    dimensions: Dimensions = field(default_factory=Dimensions)
    duration: int = 0
    has_sound: bool = False
    colors: ColorPalette = field(default_factory=ColorPalette)

    @classmethod
    def from_media(cls, media: Media) -> "MediaFacts":
        return cls(
            content_type=media.content_type,
            size=media.size,
            dimensions=media.dimensions,
            duration=media.duration,
            has_sound=media.has_sound,
            colors=media.colors,
        )


def dominant_colors(img: Image.Image, count: int = 3) -> ColorPalette:
    """Three most common colors of a downsampled, quantized copy of img, as hex."""
    sample = img.convert("RGB")
    sample.thumbnail(COLOR_SAMPLE_SIZE)
    quantized = sample.quantize(colors=count)
    palette = quantized.getpalette() or []
    ranked = sorted(quantized.getcolors() or [], reverse=True)
    hexes = ["#%02x%02x%02x" % tuple(palette[i * 3:i * 3 + 3]) for _, i in ranked[:count]]
    hexes += [""] * (3 - len(hexes))
    return ColorPalette(primary=hexes[0], secondary=hexes[1], tertiary=hexes[2])


class MediaAnalyzer:
    """Probe local media files. Video and audio are probed with ffprobe."""

    def __init__(self, extract_colors: bool = True, ffprobe: str = "ffprobe"):
        self.extract_colors = extract_colors
        self.ffprobe = ffprobe

    def analyze(self, path: Path) -> MediaFacts:
        """Analyze the file at path. Raises MediaAnalysisError when it cannot be read."""
        try:
            stat = path.stat()
        except OSError as e:
            raise MediaAnalysisError(path, e.strerror or str(e)) from e

        if path.is_dir():
            return MediaFacts(content_type="directory", size=stat.st_size)

        content_type = mimetypes.guess_type(path.name)[0] or "application/octet-stream"
        facts = MediaFacts(content_type=content_type, size=stat.st_size)

        if content_type in SVG_TYPES:
            facts.dimensions = self._svg_dimensions(path)
        elif content_type.startswith("image/"):
            facts.dimensions, facts.colors = self._image(path)
        elif content_type.startswith("video/"):
            facts.dimensions, facts.duration, facts.has_sound = self._video(path)
        elif content_type.startswith("audio/"):
            facts.duration = self._audio_duration(path)
            facts.has_sound = True
        return facts

    def _image(self, path: Path) -> tuple[Dimensions, ColorPalette]:
        try:
            with Image.open(path) as img:
                width, height = img.size
                colors = dominant_colors(img) if self.extract_colors else ColorPalette()
        except (OSError, Image.DecompressionBombError) as e:
            raise MediaAnalysisError(path, f"cannot decode image: {e}") from e
        return _dimensions(width, height), colors

    def _svg_dimensions(self, path: Path) -> Dimensions:
        """Use width/height attributes, falling back to the viewBox."""
        try:
            root = ElementTree.parse(path).getroot()
        except (OSError, ElementTree.ParseError) as e:
            raise MediaAnalysisError(path, f"while parsing SVG file: {e}") from e

        width, height = root.get("width"), root.get("height")
        if width and height:
            w, h = SVG_LENGTH_RE.match(width), SVG_LENGTH_RE.match(height)
            if not (w and h):
                raise MediaAnalysisError(path, "cannot parse SVG width/height attributes as numbers")
            return _dimensions(float(w.group(1)), float(h.group(1)))

        view_box = (root.get("viewBox") or "").replace(",", " ").split()
        if len(view_box) == 4:
            try:
                w, h = float(view_box[2]), float(view_box[3])
            except ValueError:
                w = h = 0.0
            if w and h:
                return _dimensions(w, h)
        raise MediaAnalysisError(path, "cannot determine dimensions of SVG file")

    def _probe(self, path: Path) -> dict:
        command = [
            self.ffprobe, "-v", "error", "-print_format", "json",
            "-show_format", "-show_streams", str(path),
        ]
        try:
            result = subprocess.run(command, capture_output=True, text=True, check=True)
        except FileNotFoundError as e:
            raise MediaAnalysisError(path, f"{self.ffprobe} is not installed") from e
        except subprocess.CalledProcessError as e:
            raise MediaAnalysisError(path, e.stderr.strip() or str(e)) from e
        try:
            return json.loads(result.stdout or "{}")
        except ValueError as e:
            raise MediaAnalysisError(path, f"unreadable ffprobe output: {e}") from e

    def _video(self, path: Path) -> tuple[Dimensions, int, bool]:
        probe = self._probe(path)
        dimensions, has_sound = Dimensions(), False
        for stream in probe.get("streams", []):
            if stream.get("codec_type") == "audio":
                has_sound = True
            elif stream.get("codec_type") == "video":
                dimensions = _dimensions(stream.get("width", 0), stream.get("height", 0))
        raw_duration = probe.get("format", {}).get("duration", "0")
        try:
            duration = int(float(raw_duration))
        except ValueError as e:
            raise MediaAnalysisError(path, f"couldn't convert media duration {raw_duration!r} to number") from e
        return dimensions, duration, has_sound

    def _audio_duration(self, path: Path) -> int:
        """Duration in seconds; 0 when the file cannot be probed."""
        try:
            raw_duration = self._probe(path).get("format", {}).get("duration", "0")
            return int(float(raw_duration))
        except (MediaAnalysisError, ValueError):
            return 0
