from pydantic import BaseModel, Field
from typing import Optional

class CategoryIn(BaseModel):
    name: str
    position: int = 0

class CategoryOut(CategoryIn):
    id: str

class MenuItemIn(BaseModel):
    name: str
    category_id: str
    price: float = Field(ge=0)
    description: Optional[str] = None
    available: bool = True

class MenuItemOut(MenuItemIn):
    id: str

class ToppingIn(BaseModel):
    name: str
    price: float = Field(default=0.0, ge=0)
    available: bool = True

class ToppingOut(ToppingIn):
    id: str

class PopularMenuItemOut(MenuItemOut):
    category_name: Optional[str] = None
    popularity: int
