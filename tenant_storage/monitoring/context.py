"""
Context helpers using contextvars for request/tenant/user propagation.
"""
import contextvars

request_id_var = contextvars.ContextVar("request_id", default=None)
tenant_id_var = contextvars.ContextVar("tenant_id", default=None)
user_id_var = contextvars.ContextVar("user_id", default=None)

def set_request_context(request_id=None, tenant_id=None, user_id=None):
    if request_id is not None:
        request_id_var.set(request_id)
    if tenant_id is not None:
        tenant_id_var.set(tenant_id)
    if user_id is not None:
        user_id_var.set(user_id)

def get_request_context():
    return {
        "request_id": request_id_var.get(),
        "tenant_id": tenant_id_var.get(),
        "user_id": user_id_var.get(),
    }
