from sproutie.models.user import User
from sproutie.models.saved_plant import SavedPlant
from sproutie.models.favorite import FavoritePlant
from sproutie.models.search import SearchHistory

__all__ = [
    "User",
    "SavedPlant",
    "FavoritePlant",
    "SearchHistory",
]
