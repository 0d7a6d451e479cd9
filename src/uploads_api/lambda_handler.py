"""Lambda handler for the Uploads API using Mangum."""
from mangum import Mangum
from uploads_api.main import create_app

# Create FastAPI app
app = create_app()

# Wrap with Mangum for Lambda compatibility
lambda_handler = Mangum(app, lifespan="off")
