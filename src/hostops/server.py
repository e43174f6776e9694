"""Server entry point for the hostops API."""

import uvicorn


def main():
    """Run the FastAPI server."""
    uvicorn.run(
        "hostops.api:app",
        host="0.0.0.0",
        port=8080,
        reload=True,
        log_level="info",
    )


if __name__ == "__main__":
    main()
