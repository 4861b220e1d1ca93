"""
ocean_fft：基于 FFT 的海面高度场与法线/泡沫场合成。
"""

__version__ = "0.1.0"
