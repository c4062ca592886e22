"""
Model interface shared by the formula search.

Every candidate formula is fitted through a BaseModel: a regressor mapping the
formula's covariates onto the outbreak attack rate. Fitted models are pickled
so the selected formula can be reloaded for reporting without refitting.
"""
from abc import ABC, abstractmethod
import numpy as np
from typing import Dict, List, Optional
import pickle
from pathlib import Path


class BaseModel(ABC):
    """Attack-rate regressor fitted on one candidate formula's covariates."""

    def __init__(self, name: str, config: Optional[Dict] = None):
        self.name = name
        self.config = config or {}
        self.is_fitted = False
        # Covariate order the model was trained on; set by fit()
        self.feature_names: Optional[List[str]] = None

    @abstractmethod
    def fit(self, X: np.ndarray, y: np.ndarray) -> 'BaseModel':
        """
        Train on complete-case rows.

        Args:
            X: Covariate values, one column per formula term
            y: Attack rates

        Returns:
            self, so calls can be chained into predict()
        """

    @abstractmethod
    def predict(self, X: np.ndarray) -> np.ndarray:
        """Predicted attack rate for each row of X."""

    def _check_fitted(self) -> None:
        if not self.is_fitted:
            raise ValueError(f"{self.name} has not been fitted")

    def save(self, path: str) -> None:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, 'wb') as f:
            pickle.dump(self, f)

    @classmethod
    def load(cls, path: str) -> 'BaseModel':
        """Unpickle a model written by save(); it must be an instance of cls."""
        with open(path, 'rb') as f:
            model = pickle.load(f)
        if not isinstance(model, cls):
            raise TypeError(f"{path} holds a {type(model).__name__}, not a {cls.__name__}")
        return model

    def __repr__(self) -> str:
        terms = ", ".join(self.feature_names) if self.feature_names else "-"
        return f"{self.__class__.__name__}({self.name}: {terms}, fitted={self.is_fitted})"
