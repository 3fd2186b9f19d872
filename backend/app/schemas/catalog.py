from pydantic import BaseModel


class ServiceCategoryOut(BaseModel):
    id: int
    name_ro: str
    name_en: str | None = None
    slug: str
    icon: str | None = None
    parent_id: int | None = None
    display_order: int = 0

    model_config = {"from_attributes": True}


class ServiceCategoryTree(ServiceCategoryOut):
    subcategories: list[ServiceCategoryOut] = []


class RegionOut(BaseModel):
    id: int
    name: str
    code: str
    type: str

    model_config = {"from_attributes": True}


class CityOut(BaseModel):
    id: int
    name: str
    region_id: int
    region_name: str
    region_code: str
    postal_code: str | None = None
    latitude: float | None = None
    longitude: float | None = None
    population: int | None = None


class ServiceTreeResponse(BaseModel):
    success: bool = True
    data: list[ServiceCategoryTree]
    count: int


class RegionListResponse(BaseModel):
    success: bool = True
    data: list[RegionOut]
    count: int


class CityListResponse(BaseModel):
    success: bool = True
    data: list[CityOut]
    count: int
