from fastapi.responses import JSONResponse


def success_response(data=None, status=200):
    return JSONResponse(status_code=status, content=data or {})


def error_response(message="An error occurred", status=400, **extra):
    return JSONResponse(
        status_code=status,
        content={"error": message, **extra},
    )
