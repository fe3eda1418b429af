"""Tests for the canonical pixel format tables"""

import pytest

from ultimate_tex.core.errors import FormatMappingError
from ultimate_tex.core.formats import (
    BNTX_FORMAT_MAP,
    CUTTLEFISH_FORMAT_MAP,
    CUTTLEFISH_QUALITY_MAP,
    DDS_FORMAT_MAP,
    NUTEXB_FORMAT_MAP,
    PIXEL_FORMAT_TO_BNTX,
    PIXEL_FORMAT_TO_NUTEXB,
    BntxFormat,
    DxgiFormat,
    MipmapMode,
    MipmapPolicy,
    NutexbFormat,
    PixelFormat,
    Quality,
    bntx_to_pixel_format,
    dxgi_to_pixel_format,
    nutexb_to_pixel_format,
    pixel_format_to_native,
)

NATIVE_TABLES = [
    (DxgiFormat, DDS_FORMAT_MAP),
    (NutexbFormat, NUTEXB_FORMAT_MAP),
    (BntxFormat, BNTX_FORMAT_MAP),
]


class TestFormatTables:
    @pytest.mark.parametrize("native_enum, table", NATIVE_TABLES)
    def test_every_native_format_is_mapped(self, native_enum, table):
        assert set(table) == set(native_enum)

    @pytest.mark.parametrize("native_enum, table", NATIVE_TABLES)
    def test_mapping_is_one_to_one(self, native_enum, table):
        assert len(set(table.values())) == len(table)

    def test_nutexb_reverse_table_round_trips(self):
        for native, canonical in NUTEXB_FORMAT_MAP.items():
            assert PIXEL_FORMAT_TO_NUTEXB[canonical] is native

    def test_bntx_reverse_table_round_trips(self):
        for native, canonical in BNTX_FORMAT_MAP.items():
            assert PIXEL_FORMAT_TO_BNTX[canonical] is native

    def test_known_native_codes(self):
        assert dxgi_to_pixel_format(98) is PixelFormat.BC7RgbaUnorm
        assert nutexb_to_pixel_format(0x04e5) is PixelFormat.BC7RgbaUnormSrgb
        assert bntx_to_pixel_format(0x1a01) is PixelFormat.BC1RgbaUnorm

    def test_unmapped_native_codes_raise(self):
        with pytest.raises(FormatMappingError):
            dxgi_to_pixel_format(3)
        with pytest.raises(FormatMappingError):
            nutexb_to_pixel_format(0x9999)
        with pytest.raises(FormatMappingError):
            bntx_to_pixel_format(0)

    def test_reverse_lookup_of_missing_format_raises(self):
        with pytest.raises(FormatMappingError, match="bntx"):
            pixel_format_to_native(PixelFormat.BC7RgbaUnorm, {}, "bntx")

    def test_encoder_covers_every_format_and_quality(self):
        assert set(CUTTLEFISH_FORMAT_MAP) == set(PixelFormat)
        assert set(CUTTLEFISH_QUALITY_MAP) == set(Quality)


class TestPixelFormat:
    def test_from_name_ignores_case(self):
        assert PixelFormat.from_name("bc7rgbaunormsrgb") is PixelFormat.BC7RgbaUnormSrgb
        assert PixelFormat.from_name("BC3RgbaUnorm") is PixelFormat.BC3RgbaUnorm

    def test_from_name_rejects_unknown(self):
        with pytest.raises(ValueError):
            PixelFormat.from_name("BC9")

    def test_properties(self):
        assert PixelFormat.BC1RgbaUnormSrgb.is_srgb
        assert PixelFormat.BC1RgbaUnormSrgb.is_compressed
        assert not PixelFormat.Rgba8Unorm.is_compressed
        assert not PixelFormat.BC4RSnorm.is_srgb


class TestMipmapPolicy:
    def test_exact_requires_positive_count(self):
        with pytest.raises(ValueError):
            MipmapPolicy.exact(0)

    def test_other_modes_reject_count(self):
        with pytest.raises(ValueError):
            MipmapPolicy(MipmapMode.DISABLED, 3)

    @pytest.mark.parametrize("policy", [
        MipmapPolicy.disabled(),
        MipmapPolicy.automatic(),
        MipmapPolicy.exact(5),
        MipmapPolicy.from_surface(),
    ])
    def test_dict_form(self, policy):
        assert MipmapPolicy.from_dict(policy.to_dict()) == policy
