from __future__ import annotations
import numpy as np
import logging

def get_logger(name: str = "pointrender") -> logging.Logger:
    logger = logging.getLogger(name)
    if not logger.handlers:
        handler = logging.StreamHandler()
        fmt = logging.Formatter("[%(levelname)s] %(message)s")
        handler.setFormatter(fmt)
        logger.addHandler(handler)
        logger.setLevel(logging.INFO)
    return logger

def ensure_unit_vectors(v: np.ndarray, eps: float = 1e-12) -> np.ndarray:
    norms = np.linalg.norm(v, axis=1, keepdims=True)
    norms = np.clip(norms, eps, None)
    return v / norms

def normalize(v: np.ndarray, eps: float = 1e-12) -> np.ndarray:
    """Single-vector counterpart of ensure_unit_vectors (zero stays zero)."""
    return ensure_unit_vectors(np.asarray(v, dtype=np.float64).reshape(1, 3), eps)[0]

def as_vec3(value, name: str = "vector") -> np.ndarray:
    arr = np.asarray(value, dtype=np.float64).reshape(-1)
    if arr.shape != (3,):
        raise ValueError(f"{name} must have exactly 3 components, got shape {np.shape(value)}")
    return arr

def frozen(arr: np.ndarray) -> np.ndarray:
    """Return a read-only float64 copy of ``arr``."""
    out = np.array(arr, dtype=np.float64, copy=True)
    out.flags.writeable = False
    return out
