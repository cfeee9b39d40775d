"""
Closed-form ridge regression.

    beta = (XᵀX + λI)⁻¹ Xᵀy
    intercept = mean(y - Xβ)

The intercept is neither penalized nor obtained by centering; it is the mean
residual of the penalized fit. p is small (12 features) so a plain
Gauss-Jordan elimination is enough.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import List, Sequence

import numpy as np

from moodsignal.core.exceptions import EmptyDesignMatrix

# Pivots smaller than this are replaced by it instead of failing
PIVOT_FLOOR = 1e-12


@dataclass(frozen=True)
class RidgeFit:
    beta: List[float]
    intercept: float

    def predict(self, X) -> np.ndarray:
        X = np.asarray(X, dtype=float)
        return X @ np.asarray(self.beta, dtype=float) + self.intercept


def gauss_jordan_solve(A: np.ndarray, b: np.ndarray) -> np.ndarray:
    """
    Solve A x = b by Gauss-Jordan elimination with partial pivoting.

    At each column the row with the largest absolute value (earliest on ties)
    is swapped in. A pivot with magnitude below PIVOT_FLOOR is replaced by
    PIVOT_FLOOR, so rank-deficient systems return a finite answer.
    """
    A = np.array(A, dtype=float)
    b = np.array(b, dtype=float)
    p = A.shape[0]

    for i in range(p):
        # argmax returns the first maximum, which keeps ties deterministic
        pivot_row = i + int(np.argmax(np.abs(A[i:, i])))
        if pivot_row != i:
            A[[i, pivot_row]] = A[[pivot_row, i]]
            b[[i, pivot_row]] = b[[pivot_row, i]]

        pivot = A[i, i]
        if abs(pivot) < PIVOT_FLOOR:
            pivot = PIVOT_FLOOR
        A[i, i:] /= pivot
        b[i] /= pivot

        for r in range(p):
            if r == i:
                continue
            factor = A[r, i]
            if factor == 0.0:
                continue
            A[r, i:] -= factor * A[i, i:]
            b[r] -= factor * b[i]

    return b


def ridge_fit(X: Sequence[Sequence[float]], y: Sequence[float], lam: float = 1.0) -> RidgeFit:
    """
    Fit ridge regression on an n x p design matrix.

    Raises EmptyDesignMatrix when X has no rows.
    """
    X = np.asarray(X, dtype=float)
    y = np.asarray(y, dtype=float)
    if X.size == 0 or X.shape[0] == 0:
        raise EmptyDesignMatrix()
    if X.ndim != 2:
        raise ValueError(f"Design matrix must be 2-dimensional, got shape {X.shape}")
    if y.shape[0] != X.shape[0]:
        raise ValueError(f"X has {X.shape[0]} rows but y has {y.shape[0]} values")
    if lam < 0:
        raise ValueError("lambda must be >= 0")

    p = X.shape[1]
    gram = X.T @ X + lam * np.eye(p)
    rhs = X.T @ y

    beta = gauss_jordan_solve(gram, rhs)
    intercept = float(np.mean(y - X @ beta))

    return RidgeFit(beta=[float(v) for v in beta], intercept=intercept)
