"""Image Delivery Service Package."""

__version__ = "0.1.0"
__description__ = (
    "Image ingestion and delivery on AWS Lambda: validated uploads to local "
    "storage, DynamoDB metadata, on-the-fly resizing and usage tracking"
)

__all__ = ["handlers", "core"]
