# Outbreak Attack-Rate Covariate Modeling
"""
Outbreak Attack-Rate Covariate Modeling
Exploratory analysis and random-forest regression of outbreak attack rates
against environmental and socioeconomic covariates.

Project Structure:
    outbreak_covariates/
    ├── common/      - Shared error taxonomy
    ├── data/        - BLOCK 1: Outbreak + metadata loading
    ├── reporting/   - BLOCK 2: Distribution tallies and histograms
    ├── features/    - BLOCK 3: Correlation engine and covariate clustering
    ├── models/      - BLOCK 4: Random forest wrapper and formula search
    ├── evaluation/  - BLOCK 5: CV splits, metrics, best-model selection
    └── pipeline.py  - End-to-end batch run
"""

__version__ = "0.1.0"
__author__ = "Outbreak Covariates Team"
