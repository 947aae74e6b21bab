"""
api/ - HTTP Layer
=================
FastAPI endpoints called by the scheduler and the payment gateway.
Like handlers/, no business logic lives here.
"""
