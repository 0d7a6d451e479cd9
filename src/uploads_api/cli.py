# cli.py
import click
import logging
from uploads_api.config.settings import get_settings
from uploads_api.logging_config import configure_logging

# Configure logging
logger = logging.getLogger(__name__)

@click.group()
def cli():
    """CLI commands for the Uploads API"""
    configure_logging(get_settings().log_level)

@cli.command()
def show_config():
    """Show current configuration"""
    settings = get_settings()

    print("Current Configuration:")
    print(f"  App Name: {settings.app_name}")
    print(f"  Environment: {settings.environment}")
    print(f"  MongoDB Database: {settings.mongodb_database}")
    print(f"  GridFS Bucket: {settings.gridfs_bucket_name}")
    print(f"  PDF Converter URL: {settings.pdf_converter_url or 'not set'}")
    print(f"  Scratch Dir: {settings.scratch_dir}")
    print(f"  Image Cache Max Age: {settings.image_cache_max_age}")
    print(f"  Verify ID Tokens: {settings.verify_id_tokens}")
    print(f"  Log Level: {settings.log_level}")

@cli.command()
@click.option("--host", default="0.0.0.0", help="Interface to bind")
@click.option("--port", default=8000, type=int, help="Port to listen on")
@click.option("--reload", is_flag=True, help="Reload on code changes (development only)")
def serve(host, port, reload):
    """Run the API with uvicorn"""
    import uvicorn

    settings = get_settings()
    logger.info(f"Starting {settings.app_name} on {host}:{port} ({settings.environment})")
    uvicorn.run(
        "uploads_api.main:create_app",
        factory=True,
        host=host,
        port=port,
        reload=reload,
        log_level=settings.log_level.lower(),
    )

if __name__ == "__main__":
    cli()
