from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from microlearn.config import setup_logging, get_cors_settings
from microlearn.db.database import init_models
from microlearn.exceptions import RepositoryError
from microlearn.course_service.api import routes_course
from microlearn.learner_service.api import routes_learner
from microlearn.notification_service.api import routes_whatsapp
from microlearn.progress_service.api import routes_progress

setup_logging()


@asynccontextmanager
async def lifespan(app: FastAPI):
    await init_models()
    yield


app = FastAPI(title="MicroLearn Admin API", lifespan=lifespan)

# CORS
cors_config = get_cors_settings()
app.add_middleware(CORSMiddleware, **cors_config)

app.include_router(routes_learner.router, prefix="/api/learners")
app.include_router(routes_course.course_router, prefix="/api/courses")
app.include_router(routes_progress.router, prefix="/api/progress")
app.include_router(routes_whatsapp.router, prefix="/api/whatsapp")


@app.exception_handler(RepositoryError)
async def repository_error_handler(request: Request, exc: RepositoryError):
    return JSONResponse(status_code=500, content={"detail": str(exc)})


@app.get("/api/test")
async def test():
    return {"message": "API is working!"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
