"""Language-model parameter inference."""

from .service import ParameterInference, ParameterInferenceClient

__all__ = ["ParameterInference", "ParameterInferenceClient"]
