from app.models.catalog import City, Region, ServiceCategory
from app.models.favorite import CustomerFavorite
from app.models.installer_profile import InstallerProfile
from app.models.installer_service import InstallerService, InstallerServiceArea
from app.models.review import Review
from app.models.user import User

__all__ = [
    "User",
    "InstallerProfile",
    "InstallerService",
    "InstallerServiceArea",
    "ServiceCategory",
    "Region",
    "City",
    "Review",
    "CustomerFavorite",
]
