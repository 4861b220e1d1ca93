"""
法线与泡沫场测试。
"""

import numpy as np
import pytest

from ocean_fft.models.buffers import FrameBuffers, SpatialFields, SpectralBuffers
from ocean_fft.schemas.base import (
    GridConfig,
    SolverConfig,
    SpectrumConfig,
    SurfaceConfig,
    WindConfig,
)
from ocean_fft.schemas.data import NormalMode
from ocean_fft.services.normals import (
    CentralDifferenceNormals,
    NormalFieldComputer,
    SpectralDerivativeNormals,
    build_normal_computer,
    compute_foam_mask,
    foam_intensity_scale,
    jacobian_determinant,
)
from ocean_fft.services.spectrum import SpectrumGenerator
from ocean_fft.services.transform import SpectralTransformEngine


def _wave_vectors(resolution):
    generator = SpectrumGenerator(
        GridConfig(resolution=resolution, world_unit=200.0),
        WindConfig(),
        SpectrumConfig(seed=0),
    )
    return generator.compute_wave_vectors()


def _fields(height=None, displacement_x=None, displacement_z=None, n=8):
    zeros = np.zeros((n, n))
    return SpatialFields(
        height=zeros.copy() if height is None else height,
        displacement_x=zeros.copy() if displacement_x is None else displacement_x,
        displacement_z=zeros.copy() if displacement_z is None else displacement_z,
    )


@pytest.fixture
def folded_fields():
    """第 5 列 x 位移为 -10：第 4、5 列之间发生折叠。"""
    n = 8
    displacement_x = np.zeros((n, n))
    displacement_x[:, 5] = -10.0
    return _fields(displacement_x=displacement_x, n=n)


def test_foam_intensity_scale():
    """测试泡沫缩放系数。"""
    assert foam_intensity_scale(2.0, 256) == pytest.approx(3.0 / 256)
    assert foam_intensity_scale(1.0, 8) == pytest.approx(0.25)
    assert foam_intensity_scale(0.0, 8) == 0.0


def test_jacobian_known_sign_pattern(folded_fields):
    """测试已知位移场的雅可比行列式。"""
    determinant = jacobian_determinant(
        folded_fields.displacement_x,
        folded_fields.displacement_z,
        choppiness=1.0,
        intensity=0.25,
    )

    # 第 4 列：1 + 0.25·(-10 - 0) = -1.5；第 5 列：1 + 0.25·(0 + 10) = 3.5
    assert np.allclose(determinant[:, 4], -1.5)
    assert np.allclose(determinant[:, 5], 3.5)
    assert np.allclose(np.delete(determinant, [4, 5], axis=1), 1.0)


def test_foam_mask_agreement(folded_fields):
    """测试两种法线算法对同一位移场给出相同的泡沫掩码。"""
    n = 8
    surface = SurfaceConfig(choppiness=1.0, height_adjust=1.0, foam_intensity=1.0)
    spectra = SpectralBuffers.allocate(n)
    wave_vectors = _wave_vectors(n)

    central = NormalFieldComputer(CentralDifferenceNormals())
    spectral = NormalFieldComputer(
        SpectralDerivativeNormals(wave_vectors, SpectralTransformEngine(n))
    )

    out_central = FrameBuffers.allocate(n).normal
    out_spectral = FrameBuffers.allocate(n).normal
    central.compute(folded_fields, spectra, surface, out_central)
    spectral.compute(folded_fields, spectra, surface, out_spectral)

    expected = np.zeros((n, n))
    expected[:, 4] = 1.0

    assert np.array_equal(out_central[..., 3], expected)
    assert np.array_equal(out_spectral[..., 3], expected)


def test_foam_disabled_when_intensity_zero(folded_fields):
    """测试泡沫强度为 0 时不产生泡沫。"""
    n = 8
    out = FrameBuffers.allocate(n).normal
    computer = NormalFieldComputer(CentralDifferenceNormals())
    computer.compute(
        folded_fields,
        SpectralBuffers.allocate(n),
        SurfaceConfig(choppiness=1.0, foam_intensity=0.0),
        out,
    )
    assert np.all(out[..., 3] == 0)


def test_foam_wraps_at_seam():
    """测试雅可比差分在边界处回绕：最后一列与第 0 列相邻。"""
    n = 8
    displacement_x = np.zeros((n, n))
    displacement_x[:, 0] = -10.0

    mask = compute_foam_mask(displacement_x, np.zeros((n, n)), 1.0, 0.25)

    assert np.all(mask[:, n - 1] == 1)
    assert mask.sum() == n


def test_central_difference_flat_surface():
    """测试平静海面的法线竖直向上。"""
    normals = CentralDifferenceNormals().compute_normals(
        _fields(), SpectralBuffers.allocate(8), height_adjust=1.2
    )

    assert normals.shape == (8, 8, 3)
    assert np.allclose(normals[..., 0], 0.0)
    assert np.allclose(normals[..., 1], 1.0)
    assert np.allclose(normals[..., 2], 0.0)


def test_central_difference_slope_direction():
    """测试沿 +x、+z 上升的坡面法线朝向 -x、-z。"""
    n = 8
    x = np.arange(n, dtype=np.float64)
    strategy = CentralDifferenceNormals(sample_spacing=2.0)
    spectra = SpectralBuffers.allocate(n)

    # 高度按 height_adjust / N 缩放，height_adjust = N 时即为原值
    rising_x = np.sin(2.0 * np.pi * x / n)[np.newaxis, :].repeat(n, axis=0)
    normals = strategy.compute_normals(_fields(height=rising_x), spectra, float(n))
    assert normals[0, 0, 0] < 0
    assert normals[0, 0, 1] > 0
    assert normals[0, 0, 2] == pytest.approx(0.0)

    rising_z = rising_x.T.copy()
    normals = strategy.compute_normals(_fields(height=rising_z), spectra, float(n))
    assert normals[0, 0, 2] < 0
    assert normals[0, 0, 0] == pytest.approx(0.0)


def test_central_difference_seam_wraps():
    """测试最后一列的相邻单元为第 0 列（可无缝平铺）。"""
    n = 8
    height = np.zeros((n, n))
    height[:, 0] = 4.0
    normals = CentralDifferenceNormals(sample_spacing=2.0).compute_normals(
        _fields(height=height), SpectralBuffers.allocate(n), float(n)
    )

    # 最后一列向第 0 列上升 4：切向量 (2, 0, 4)
    tangent = np.array([2.0, 0.0, 4.0]) / np.sqrt(20.0)
    assert np.allclose(normals[:, n - 1, 0], -tangent[2])
    assert np.allclose(normals[:, n - 1, 1], tangent[0])
    assert np.allclose(normals[:, n - 2], [0.0, 1.0, 0.0])


def test_central_difference_translation_equivariant():
    """测试平移（np.roll）高度场后，法线随之平移。"""
    n = 16
    rng = np.random.default_rng(11)
    height = rng.standard_normal((n, n)) * 5.0
    strategy = CentralDifferenceNormals()
    spectra = SpectralBuffers.allocate(n)

    base = strategy.compute_normals(_fields(height=height, n=n), spectra, 1.2)
    shifted = strategy.compute_normals(
        _fields(height=np.roll(height, (3, 5), axis=(0, 1)), n=n), spectra, 1.2
    )

    assert np.allclose(shifted, np.roll(base, (3, 5), axis=(0, 1)))


def test_spectral_derivative_single_mode():
    """测试频域求导法线与解析梯度一致。"""
    n = 8
    wave_vectors = _wave_vectors(n)
    strategy = SpectralDerivativeNormals(wave_vectors, SpectralTransformEngine(n))

    spectra = SpectralBuffers.allocate(n)
    spectra.height[0, 1] = 1.0

    normals = strategy.compute_normals(_fields(n=n), spectra, height_adjust=float(n))

    # h(x) = cos(2πx/N)，∂h/∂x = -kx·sin(2πx/N)
    kx = wave_vectors.kx[0, 1]
    x = np.arange(n)
    gradient_x = -kx * np.sin(2.0 * np.pi * x / n)
    expected = np.stack(
        [-gradient_x, np.ones(n), np.zeros(n)], axis=-1
    ) / np.sqrt(1.0 + gradient_x**2)[:, np.newaxis]

    assert np.allclose(normals[0], expected)
    assert np.allclose(np.linalg.norm(normals, axis=-1), 1.0)


def test_normal_computer_writes_channels(folded_fields):
    """测试输出缓冲区写入 (nx, ny, nz, foam)。"""
    n = 8
    out = FrameBuffers.allocate(n).normal
    NormalFieldComputer(CentralDifferenceNormals()).compute(
        folded_fields,
        SpectralBuffers.allocate(n),
        SurfaceConfig(choppiness=1.0, foam_intensity=1.0),
        out,
    )

    assert out.dtype == np.float32
    assert np.allclose(out[..., 1], 1.0)
    assert set(np.unique(out[..., 3])) <= {0.0, 1.0}


def test_build_normal_computer():
    """测试根据配置选择法线算法。"""
    wave_vectors = _wave_vectors(8)

    central = build_normal_computer(SolverConfig(sample_spacing=3.0), wave_vectors)
    spectral = build_normal_computer(
        SolverConfig(normal_mode="spectral_derivative"), wave_vectors
    )

    assert central.mode == NormalMode.CENTRAL_DIFFERENCE
    assert central.strategy.sample_spacing == 3.0
    assert spectral.mode == NormalMode.SPECTRAL_DERIVATIVE
