"""
Container codec: byte I/O and RGBA8 decode/encode for every container kind.

- Raster images are read and written with Pillow.
- DDS surfaces are decoded with Pillow (block-compressed) or numpy
  (uncompressed layouts).
- Encoding and mipmap generation run through the cuttlefish command line tool.
- Console containers are delegated to a ConsoleBackend registered per kind.
"""

import io
import logging
import subprocess
import tempfile
from importlib.metadata import entry_points
from pathlib import Path
from typing import Dict, Optional

import numpy as np
from PIL import Image, UnidentifiedImageError

from .dds_parser import PIXEL_BYTES, with_linear_dxgi_format
from .errors import (
    CorruptDataError,
    EncodeError,
    TextureError,
    TextureIOError,
    UnsupportedExtensionError,
    UnsupportedSourceFormatError,
)
from .formats import (
    CUTTLEFISH_FORMAT_MAP,
    CUTTLEFISH_QUALITY_MAP,
    DxgiFormat,
    MipmapMode,
    MipmapPolicy,
    PixelFormat,
    Quality,
)
from .texture import (
    CONSOLE_KINDS,
    ConsoleTexture,
    ContainerKind,
    DdsTexture,
    RawImage,
    Texture,
    container_kind_for_path,
    kind_table,
)
from .utils import atomic_write, find_cuttlefish

logger = logging.getLogger(__name__)

# Pillow formats that cannot store an alpha channel
NO_ALPHA_FORMATS = {'JPEG', 'BMP'}

# Installed packages register console backends under this entry point group,
# one entry per container extension (e.g. nutexb = "pkg.module:NutexbBackend")
CONSOLE_BACKEND_GROUP = "ultimate_tex.console_backends"


class ConsoleBackend:
    """
    Byte-level reader/writer for one console container format.

    Implementations own the header layout and the platform swizzling. They move
    between their container and DDS, which is the interchange container of the
    codec.
    """

    def read_bytes(self, data: bytes) -> ConsoleTexture:
        raise NotImplementedError

    def to_bytes(self, texture: ConsoleTexture) -> bytes:
        raise NotImplementedError

    def to_dds(self, texture: ConsoleTexture) -> DdsTexture:
        raise NotImplementedError

    def from_dds(self, dds: DdsTexture, name: str) -> ConsoleTexture:
        raise NotImplementedError

    def optimize_size(self, texture: ConsoleTexture) -> ConsoleTexture:
        """Recompute the layout to minimize padding bytes"""
        raise NotImplementedError


def load_console_backends(group: str = CONSOLE_BACKEND_GROUP) -> Dict[ContainerKind, ConsoleBackend]:
    """
    Instantiate the console backends registered by installed packages.

    Each entry point name is a console container extension and its object is
    called with no arguments to build the backend. Entries that name an unknown
    container or fail to load are logged and skipped.
    """
    backends = {}
    for entry_point in entry_points(group=group):
        try:
            kind = ContainerKind(entry_point.name.lower())
        except ValueError:
            kind = None
        if kind not in CONSOLE_KINDS:
            logger.warning("Ignoring console backend %s: '%s' is not a console container",
                           entry_point.value, entry_point.name)
            continue
        try:
            backends[kind] = entry_point.load()()
        except Exception as e:
            logger.warning("Could not load %s backend %s: %s", kind.value, entry_point.value, e)
            continue
        logger.debug("Loaded %s backend %s", kind.value, entry_point.value)
    return backends

def _decode_uncompressed(dds: DdsTexture) -> np.ndarray:
    """Decode mip 0 of an uncompressed DDS surface"""
    header = dds.header
    width, height = header.width, header.height
    fmt = header.dxgi_format
    count = width * height * PIXEL_BYTES[fmt]
    raw = dds.data[header.data_offset:header.data_offset + count]

    if fmt == DxgiFormat.R8_UNORM:
        red = np.frombuffer(raw, dtype=np.uint8).reshape(height, width)
        rgba = np.empty((height, width, 4), dtype=np.uint8)
        rgba[..., 0] = red
        rgba[..., 1] = red
        rgba[..., 2] = red
        rgba[..., 3] = 255
        return rgba

    if fmt == DxgiFormat.R32G32B32A32_FLOAT:
        values = np.frombuffer(raw, dtype='<f4').reshape(height, width, 4)
        return np.round(np.clip(values, 0.0, 1.0) * 255.0).astype(np.uint8)

    pixels = np.frombuffer(raw, dtype=np.uint8).reshape(height, width, 4)
    if fmt in (DxgiFormat.B8G8R8A8_UNORM, DxgiFormat.B8G8R8A8_UNORM_SRGB):
        pixels = pixels[..., [2, 1, 0, 3]]
    return np.array(pixels, dtype=np.uint8)


def _require_single_surface(texture) -> None:
    """
    Reject sources with more than one surface per level.

    An RGBA8 decode holds one 2D surface, so extra layers or volume slices
    would be lost.
    """
    _, _, depth = texture.dimensions()
    if texture.layer_count > 1 or depth > 1:
        raise UnsupportedSourceFormatError(
            f"Cannot decode {texture.kind.value} with {texture.layer_count} layer(s) "
            f"and depth {depth}: only single 2D surfaces are supported"
        )


class TextureCodec:
    """Reads, decodes, encodes and writes textures of every container kind"""

    def __init__(self, cuttlefish_path: Optional[str] = None,
                 console_backends: Optional[Dict[ContainerKind, ConsoleBackend]] = None,
                 timeout: int = 300):
        """
        Args:
            cuttlefish_path: Encoder executable. If None, looked up on first encode.
            console_backends: Backends for NUTEXB and/or BNTX containers
            timeout: Seconds allowed for one encoder run
        """
        self.cuttlefish_path = cuttlefish_path
        self.console_backends = dict(console_backends or {})
        self.timeout = timeout

        self._readers = kind_table({
            ContainerKind.IMAGE: self._read_image,
            ContainerKind.DDS: lambda path: DdsTexture.from_bytes(self._read_bytes(path)),
            ContainerKind.NUTEXB: lambda path: self._read_console(ContainerKind.NUTEXB, path),
            ContainerKind.BNTX: lambda path: self._read_console(ContainerKind.BNTX, path),
        }, "TextureCodec readers")

        self._decoders = kind_table({
            ContainerKind.IMAGE: lambda texture: texture.clone(),
            ContainerKind.DDS: self._decode_dds,
            ContainerKind.NUTEXB: self._decode_console,
            ContainerKind.BNTX: self._decode_console,
        }, "TextureCodec decoders")

        self._writers = kind_table({
            ContainerKind.IMAGE: self._write_image,
            ContainerKind.DDS: lambda texture, path: self._write_bytes(texture.data, path),
            ContainerKind.NUTEXB: self._write_console,
            ContainerKind.BNTX: self._write_console,
        }, "TextureCodec writers")

    # =========================================================================
    # Reading
    # =========================================================================

    def read(self, path: Path) -> Texture:
        """
        Read a texture, choosing the container purely from the file extension.

        Extensions other than dds/nutexb/bntx are opened as raster images.
        """
        path = Path(path)
        return self._readers[container_kind_for_path(path)](path)

    def _read_bytes(self, path: Path) -> bytes:
        try:
            return path.read_bytes()
        except OSError as e:
            raise TextureIOError(f"Failed to read {path}: {e}") from e

    def _read_image(self, path: Path) -> RawImage:
        extension = path.suffix.lower()
        if extension not in Image.registered_extensions():
            raise UnsupportedExtensionError(f"Unsupported image extension: {path.suffix or '(none)'}")
        try:
            with Image.open(path) as img:
                pixels = np.array(img.convert('RGBA'), dtype=np.uint8)
        except UnidentifiedImageError as e:
            raise CorruptDataError(f"Could not decode image {path.name}: {e}") from e
        except OSError as e:
            raise TextureIOError(f"Failed to read {path}: {e}") from e
        except (ValueError, Image.DecompressionBombError) as e:
            raise CorruptDataError(f"Could not decode image {path.name}: {e}") from e
        return RawImage(pixels)

    def _backend(self, kind: ContainerKind) -> ConsoleBackend:
        try:
            return self.console_backends[kind]
        except KeyError:
            raise UnsupportedExtensionError(f"No codec backend registered for .{kind.value} files") from None

    def _read_console(self, kind: ContainerKind, path: Path) -> ConsoleTexture:
        backend = self._backend(kind)
        data = self._read_bytes(path)
        try:
            return backend.read_bytes(data)
        except TextureError:
            raise
        except Exception as e:
            raise CorruptDataError(f"Could not parse {path.name}: {e}") from e

    # =========================================================================
    # Decoding
    # =========================================================================

    def decode_rgba8(self, texture: Texture) -> RawImage:
        """Decode the base mip level of a single 2D surface to RGBA8"""
        return self._decoders[texture.kind](texture)

    def _decode_console(self, texture: ConsoleTexture) -> RawImage:
        _require_single_surface(texture)
        return self._decode_dds(self.to_dds(texture))

    def _decode_dds(self, dds: DdsTexture) -> RawImage:
        _require_single_surface(dds)
        if dds.header.dxgi_format in PIXEL_BYTES:
            return RawImage(_decode_uncompressed(dds))

        # Pillow only knows the linear codes for some block formats
        data = with_linear_dxgi_format(dds.data, dds.header)
        try:
            with Image.open(io.BytesIO(data)) as img:
                pixels = np.array(img.convert('RGBA'), dtype=np.uint8)
        except (OSError, NotImplementedError, ValueError) as e:
            raise UnsupportedSourceFormatError(
                f"Cannot decode {dds.pixel_format()} surface: {e}"
            ) from e
        return RawImage(pixels)

    # =========================================================================
    # Encoding
    # =========================================================================

    def encode(self, image: RawImage, pixel_format: PixelFormat,
               quality: Quality, mipmaps: MipmapPolicy) -> DdsTexture:
        """
        Encode an RGBA8 surface to a DDS texture in the requested format.

        The surface has a single level, so FromSurface produces no extra mips.
        """
        cuttlefish = self.cuttlefish_path or find_cuttlefish()
        if cuttlefish is None:
            raise EncodeError("cuttlefish encoder not found (looked in tools/ and on PATH)")
        self.cuttlefish_path = cuttlefish

        cf_format, cf_type = CUTTLEFISH_FORMAT_MAP[pixel_format]

        try:
            with tempfile.TemporaryDirectory(prefix="ultimate_tex_") as tmp:
                input_path = Path(tmp) / "surface.png"
                output_path = Path(tmp) / "encoded.dds"
                Image.fromarray(image.pixels).save(input_path)

                cmd = [
                    cuttlefish,
                    "-i", str(input_path),
                    "-o", str(output_path),
                    "-f", cf_format,
                    "-t", cf_type,
                    "-Q", CUTTLEFISH_QUALITY_MAP[quality],
                ]
                if pixel_format.is_srgb:
                    cmd.append("--srgb")

                if mipmaps.mode is MipmapMode.GENERATED_AUTOMATIC:
                    cmd.append("-m")
                elif mipmaps.mode is MipmapMode.GENERATED_EXACT:
                    cmd.extend(["-m", str(mipmaps.count)])

                logger.debug("Running %s", ' '.join(cmd))
                result = subprocess.run(cmd, capture_output=True, text=True, timeout=self.timeout)

                if result.returncode != 0:
                    error_msg = result.stderr or result.stdout or "Unknown error"
                    raise EncodeError(f"cuttlefish failed (exit {result.returncode}): {error_msg.strip()}")

                if not output_path.exists():
                    raise EncodeError(f"Encoder output not created for {pixel_format}")

                data = output_path.read_bytes()
        except subprocess.TimeoutExpired as e:
            raise EncodeError(f"cuttlefish timed out after {self.timeout}s") from e
        except OSError as e:
            raise EncodeError(f"Encoding to {pixel_format} failed: {e}") from e

        try:
            return DdsTexture.from_bytes(data)
        except TextureError as e:
            raise EncodeError(f"Encoder produced an unreadable DDS: {e}") from e

    # =========================================================================
    # Container interchange
    # =========================================================================

    def to_dds(self, texture: Texture) -> DdsTexture:
        """View any texture as a DDS container"""
        if isinstance(texture, DdsTexture):
            return texture
        if isinstance(texture, RawImage):
            return self.encode(texture, PixelFormat.Rgba8Unorm, Quality.FAST, MipmapPolicy.disabled())
        backend = self._backend(texture.kind)
        try:
            return backend.to_dds(texture)
        except TextureError:
            raise
        except Exception as e:
            raise UnsupportedSourceFormatError(f"Cannot convert {texture.kind.value} to DDS: {e}") from e

    def from_dds(self, kind: ContainerKind, dds: DdsTexture, name: str) -> Texture:
        """Wrap a DDS texture in the container of the given kind"""
        if kind is ContainerKind.DDS:
            return dds
        if kind is ContainerKind.IMAGE:
            return self.decode_rgba8(dds)
        backend = self._backend(kind)
        try:
            return backend.from_dds(dds, name)
        except TextureError:
            raise
        except Exception as e:
            raise EncodeError(f"Cannot create {kind.value} from DDS: {e}") from e

    def optimize_size(self, texture: Texture) -> Texture:
        """Minimize padding of a console container; other kinds are returned unchanged"""
        if not isinstance(texture, ConsoleTexture):
            return texture
        backend = self._backend(texture.kind)
        try:
            return backend.optimize_size(texture)
        except TextureError:
            raise
        except Exception as e:
            raise EncodeError(f"Cannot optimize {texture.kind.value} layout: {e}") from e

    # =========================================================================
    # Writing
    # =========================================================================

    def write(self, texture: Texture, path: Path) -> None:
        """Write a texture to disk. Raster images use the encoder implied by the extension."""
        self._writers[texture.kind](texture, Path(path))

    def _write_bytes(self, data: bytes, path: Path) -> None:
        atomic_write(path, lambda tmp: tmp.write_bytes(data))

    def _write_image(self, image: RawImage, path: Path) -> None:
        pil_format = Image.registered_extensions().get(path.suffix.lower())
        if pil_format is None or pil_format not in Image.SAVE:
            raise UnsupportedExtensionError(f"Cannot write images with extension {path.suffix or '(none)'}")

        img = Image.fromarray(image.pixels)
        if pil_format in NO_ALPHA_FORMATS:
            img = img.convert('RGB')

        def save(tmp_path: Path):
            try:
                img.save(tmp_path, format=pil_format)
            except (ValueError, KeyError, TypeError) as e:
                raise EncodeError(f"Cannot encode {path.name} as {pil_format}: {e}") from e

        atomic_write(path, save)

    def _write_console(self, texture: ConsoleTexture, path: Path) -> None:
        backend = self._backend(texture.kind)
        try:
            data = backend.to_bytes(texture)
        except TextureError:
            raise
        except Exception as e:
            raise EncodeError(f"Cannot serialize {texture.kind.value} texture: {e}") from e
        self._write_bytes(data, path)
