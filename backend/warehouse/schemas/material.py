# backend/warehouse/schemas/material.py
from datetime import datetime
from pydantic import Field, computed_field
from warehouse.schemas.common import CamelModel, Pagination
from warehouse.schemas.inventory import AdjustmentInfo, MovementResponse


class MaterialBase(CamelModel):
    description: str | None = None
    unit: str = "pcs"
    min_stock: float = Field(0, ge=0)
    max_stock: float = Field(0, ge=0)
    reorder_point: float = Field(0, ge=0)
    reorder_qty: float = Field(0, ge=0)
    price_per_unit: float = Field(0, ge=0)
    supplier: str | None = None
    location: str | None = None
    attribute_type: str | None = None
    attribute_value: str | None = None


class MaterialCreate(MaterialBase):
    name: str = Field(..., min_length=1, max_length=255)
    # opening balance; later changes go through the stock endpoints
    qty_on_hand: float = Field(0, ge=0)


class MaterialUpdate(CamelModel):
    """Field-level update. The quantity on hand is deliberately absent."""

    name: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = None
    unit: str | None = None
    min_stock: float | None = Field(None, ge=0)
    max_stock: float | None = Field(None, ge=0)
    reorder_point: float | None = Field(None, ge=0)
    reorder_qty: float | None = Field(None, ge=0)
    price_per_unit: float | None = Field(None, ge=0)
    supplier: str | None = None
    location: str | None = None
    attribute_type: str | None = None
    attribute_value: str | None = None
    is_active: bool | None = None


class MaterialBulkItem(MaterialUpdate):
    id: int


class MaterialBulkUpdateRequest(CamelModel):
    materials: list[MaterialBulkItem] = Field(..., min_length=1)


class MaterialImportRequest(CamelModel):
    # rows are validated one by one so a bad row does not sink the batch
    materials: list[dict] = Field(..., min_length=1)


class MaterialResponse(MaterialBase):
    id: int
    code: str
    name: str
    qty_on_hand: float
    is_active: bool
    created_at: datetime
    updated_at: datetime

    @computed_field(alias="totalValue")
    @property
    def total_value(self) -> float:
        return self.qty_on_hand * self.price_per_unit


class MaterialListItem(MaterialResponse):
    can_delete: bool
    has_movements: bool
    has_remaining_materials: bool


class MaterialListData(CamelModel):
    materials: list[MaterialListItem]
    pagination: Pagination


class MaterialListResponse(CamelModel):
    success: bool = True
    data: MaterialListData


class RestockRecommendation(CamelModel):
    action: str
    priority: str
    reason: str
    recommended_quantity: float


class MaterialDetail(MaterialResponse):
    recent_movements: list[MovementResponse]
    restock_recommendation: RestockRecommendation


class MaterialDetailResponse(CamelModel):
    success: bool = True
    data: MaterialDetail


class MaterialWriteResponse(CamelModel):
    success: bool = True
    message: str
    data: MaterialResponse


class MaterialCollectionResponse(CamelModel):
    success: bool = True
    data: list[MaterialResponse]


class BatchResult(CamelModel):
    message: str
    results: list[MaterialResponse]
    errors: list[dict]


class MaterialAdjustResponse(CamelModel):
    message: str
    material: MaterialResponse
    previous_quantity: float
    new_quantity: float
    adjustment: AdjustmentInfo


class MaterialStockResponse(CamelModel):
    message: str
    material: MaterialResponse
    previous_quantity: float
    new_quantity: float
    quantity_difference: float


class ProductUsingMaterial(CamelModel):
    product_id: int
    product_name: str
    product_code: str
    quantity_per_unit: float
    unit: str
    max_producible: int


class ProductsUsingMaterialResponse(CamelModel):
    success: bool = True
    material: MaterialResponse
    products: list[ProductUsingMaterial]


class MaterialBrief(CamelModel):
    id: int
    name: str
    code: str


class AnalyticsMovement(MovementResponse):
    material: MaterialBrief | None = None


class AnalyticsOverview(CamelModel):
    total_materials: int
    total_value: float
    critical_stock_count: int
    attribute_types: int


class AttributeCount(CamelModel):
    name: str
    count: int


class InventoryAnalytics(CamelModel):
    overview: AnalyticsOverview
    materials_by_attribute: list[AttributeCount]
    top_value_materials: list[MaterialResponse]
    recent_movements: list[AnalyticsMovement]
