"""poolscore: answer scoring and standings for prediction pools."""

__version__ = "0.1.0"
