"""Per-bin spatial filter design and strategy composition."""

from .composer import Strategy, compose
from .correlation import estimate_correlation, estimate_regime_correlation
from .echo import cancel_echo, estimate_echo_path
from .gevd import synthesize_filter
from .postfilter import design_postfilter
from .stages import echo_cancellation, noise_reduction, post_filter
from .utils import apply_filter, stack_channels, tensor_H

__all__ = [
    "Strategy",
    "compose",
    "estimate_correlation",
    "estimate_regime_correlation",
    "cancel_echo",
    "estimate_echo_path",
    "synthesize_filter",
    "design_postfilter",
    "echo_cancellation",
    "noise_reduction",
    "post_filter",
    "apply_filter",
    "stack_channels",
    "tensor_H",
]
