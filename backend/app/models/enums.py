import enum

# Stored as VARCHAR columns; values are validated by the application, not by a
# native PG ENUM, so new values do not need an ALTER TYPE migration.


class UserRole(str, enum.Enum):
    CUSTOMER = "customer"
    INSTALLER = "installer"


class RegionType(str, enum.Enum):
    COUNTY = "county"
    MUNICIPALITY = "municipality"


class InstallerSort(str, enum.Enum):
    RATING = "rating"
    REVIEWS = "reviews"


class ReviewSort(str, enum.Enum):
    NEWEST = "newest"
    HIGHEST = "highest"
    LOWEST = "lowest"
    HELPFUL = "helpful"
