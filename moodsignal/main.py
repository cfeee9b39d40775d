import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from moodsignal.api import feature_store, model, predict, reports
from moodsignal.core.exceptions import InsufficientTrainingData, MoodSignalError
from moodsignal.core.logging import setup_logging

setup_logging()
logger = logging.getLogger(__name__)

app = FastAPI(
    title="MoodSignal",
    description="Daily behavioral features and ridge-regression mood model",
    version="0.1.0"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"]
)

# Simple handler errors and validation
@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    # Get first error from list
    error = exc.errors()[0]

    # Get the field name (it is always at the end of the 'loc' list)
    field_name = error.get("loc")[-1]
    error_message = error.get("msg")

    return JSONResponse(
        status_code=422,
        content={
            "status": "error",
            "message": f"Error in field '{field_name}': {error_message}"
        }
    )

@app.exception_handler(InsufficientTrainingData)
async def insufficient_data_handler(request: Request, exc: InsufficientTrainingData):
    return JSONResponse(status_code=400, content={"error": str(exc)})

@app.exception_handler(MoodSignalError)
async def pipeline_error_handler(request: Request, exc: MoodSignalError):
    logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=500, content={"error": str(exc)})

# API routers
app.include_router(feature_store.router, prefix="/api/feature-store", tags=["Feature Store"])
app.include_router(model.router, prefix="/api/model", tags=["Model"])
app.include_router(predict.router, prefix="/api/predict", tags=["Predict"])
app.include_router(reports.router, prefix="/api/reports", tags=["Reports"])
