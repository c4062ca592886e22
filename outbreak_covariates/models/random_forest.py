"""
Random Forest Regressor for attack-rate modeling

Tree ensemble regressor with a fixed number of candidate predictors per split
(mtry) and two importance measures:
- pct_inc_mse: percentage increase in MSE when a covariate is permuted
- inc_node_purity: total decrease in residual sum of squares from splits on
  a covariate, summed over all trees
"""
import math
import numpy as np
import pandas as pd
from typing import Dict, Optional, List
from sklearn.ensemble import RandomForestRegressor
from sklearn.inspection import partial_dependence, permutation_importance
from sklearn.metrics import mean_squared_error

from .base import BaseModel


def compute_mtry(n_predictors: int) -> int:
    """round(sqrt(p)), at least 1 and at most p."""
    if n_predictors < 1:
        raise ValueError("A formula needs at least one predictor")
    return int(min(n_predictors, max(1, round(math.sqrt(n_predictors)))))


class RandomForestModel(BaseModel):
    """Random Forest regressor with a per-formula mtry."""

    def __init__(self, config: Optional[Dict] = None, mtry: Optional[int] = None):
        super().__init__(name="random_forest", config=config)

        # Default parameters (R randomForest: ntree=500, nodesize=5)
        cfg = config or {}
        self.n_estimators = cfg.get('n_estimators', 500)
        self.max_depth = cfg.get('max_depth', None)
        self.min_samples_leaf = cfg.get('min_samples_leaf', 5)
        self.n_jobs = cfg.get('n_jobs', -1)
        self.random_state = cfg.get('random_state', 42)
        self.mtry = mtry

        self.model: Optional[RandomForestRegressor] = None

    def _build(self, n_features: int) -> RandomForestRegressor:
        mtry = self.mtry if self.mtry is not None else compute_mtry(n_features)
        return RandomForestRegressor(
            n_estimators=self.n_estimators,
            max_depth=self.max_depth,
            min_samples_leaf=self.min_samples_leaf,
            max_features=min(mtry, n_features),
            bootstrap=True,
            n_jobs=self.n_jobs,
            random_state=self.random_state,
        )

    def fit(self, X: np.ndarray, y: np.ndarray,
            feature_names: Optional[List[str]] = None) -> 'RandomForestModel':
        """Fit Random Forest."""
        X = np.asarray(X, dtype=np.float64)
        y = np.asarray(y, dtype=np.float64)
        if X.ndim != 2 or len(X) == 0:
            raise ValueError("X must be a non-empty 2D array")

        self.model = self._build(X.shape[1])
        self.model.fit(X, y)
        self.feature_names = list(feature_names) if feature_names else None
        self.is_fitted = True

        return self

    def predict(self, X: np.ndarray) -> np.ndarray:
        """Predict attack rates."""
        self._check_fitted()
        return self.model.predict(np.asarray(X, dtype=np.float64))

    def _names(self, n: int) -> List[str]:
        return self.feature_names or [f"x{i}" for i in range(n)]

    def get_node_purity_importance(self) -> Dict[str, float]:
        """Total RSS decrease per covariate, summed over trees."""
        self._check_fitted()
        n_features = self.model.n_features_in_
        totals = np.zeros(n_features)
        for tree in self.model.estimators_:
            t = tree.tree_
            # compute_feature_importances(normalize=False) is scaled by the
            # root's weighted sample count; undo that to get raw RSS decrease
            totals += t.compute_feature_importances(normalize=False) * t.weighted_n_node_samples[0]
        return dict(zip(self._names(n_features), totals.tolist()))

    def get_permutation_importance(
        self,
        X: np.ndarray,
        y: np.ndarray,
        n_repeats: int = 10
    ) -> Dict[str, float]:
        """
        Percentage increase in MSE when each covariate is permuted.

        Args:
            X: Evaluation features (held-out rows)
            y: Evaluation outcome
            n_repeats: Permutations per covariate

        Returns:
            Covariate -> 100 * mean MSE increase / baseline MSE
        """
        self._check_fitted()
        X = np.asarray(X, dtype=np.float64)
        y = np.asarray(y, dtype=np.float64)

        baseline = mean_squared_error(y, self.predict(X))
        result = permutation_importance(
            self.model, X, y,
            scoring='neg_mean_squared_error',
            n_repeats=n_repeats,
            random_state=self.random_state,
            n_jobs=None,
        )
        if baseline > 0:
            pct = 100.0 * result.importances_mean / baseline
        else:
            pct = np.where(result.importances_mean > 0, np.inf, 0.0)
        return dict(zip(self._names(X.shape[1]), pct.tolist()))

    def get_partial_dependence(
        self,
        X: np.ndarray,
        grid_resolution: int = 20
    ) -> pd.DataFrame:
        """
        Partial dependence of the prediction on each covariate.

        Returns:
            Long DataFrame with columns: covariate, value, partial_dependence
        """
        self._check_fitted()
        X = np.asarray(X, dtype=np.float64)
        names = self._names(X.shape[1])

        frames = []
        for i, name in enumerate(names):
            pd_result = partial_dependence(
                self.model, X, features=[i],
                grid_resolution=grid_resolution, kind='average'
            )
            frames.append(pd.DataFrame({
                'covariate': name,
                'value': pd_result['grid_values'][0],
                'partial_dependence': pd_result['average'][0],
            }))

        return pd.concat(frames, ignore_index=True)
