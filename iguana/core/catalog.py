"""Image model tiers and purchasable credit packages."""

from pydantic import BaseModel

from iguana.core.exceptions import BadRequestError


class ModelInfo(BaseModel):
    id: str
    name: str
    description: str
    credit_cost: int


class CreditPackage(BaseModel):
    id: str
    name: str
    credits: int
    price: float
    popular: bool = False


MODELS: list[ModelInfo] = [
    ModelInfo(
        id="iguana-fast",
        name="Iguana Fast",
        description="Versatile model optimized for rapid image generation with precise style control",
        credit_cost=4,
    ),
    ModelInfo(
        id="iguana-sketch",
        name="Iguana Sketch",
        description="Fast model specialized in concept art, sketches and illustrations",
        credit_cost=32,
    ),
    ModelInfo(
        id="iguana-pro",
        name="Iguana Pro",
        description="Premium model for ultra-realistic images with exceptional detail",
        credit_cost=63,
    ),
]

CREDIT_PACKAGES: list[CreditPackage] = [
    CreditPackage(id="starter", name="Starter", credits=50, price=5),
    CreditPackage(id="popular", name="Popular", credits=150, price=12, popular=True),
    CreditPackage(id="pro", name="Professional", credits=400, price=29),
    CreditPackage(id="unlimited", name="Studio", credits=1000, price=59),
]


def get_model(model_id: str) -> ModelInfo:
    for m in MODELS:
        if m.id == model_id:
            return m
    raise BadRequestError(f"Unknown model: {model_id}")


def get_package(package_id: str) -> CreditPackage:
    for p in CREDIT_PACKAGES:
        if p.id == package_id:
            return p
    raise BadRequestError(f"Unknown credit package: {package_id}")
