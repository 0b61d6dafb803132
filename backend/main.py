import uvicorn
from warehouse.core.config import settings


def main():
    """Start the warehouse API server."""
    uvicorn.run("warehouse.main:app", host=settings.HOST, port=settings.PORT, reload=True)


if __name__ == "__main__":
    main()
