"""
Serving — FastAPI application for document upload and chat.

Build the app with :func:`docchat.serving.app.create_app`, or run
``python -m docchat.serving`` to serve it with uvicorn.
"""
