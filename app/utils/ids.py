# app/utils/ids.py

from enum import Enum
from uuid import uuid4

class IDPrefix(str, Enum):
    CUSTOMER = "cus"
    IMPORT = "import"
    SESSION = "imps"
    ACTIVITY = "act"

def generate_prefixed_id(prefix: IDPrefix) -> str:
    """
    Generate a UUID string with a prefix.
    
    Args:
        prefix (IDPrefix): The entity prefix (e.g., CUSTOMER, IMPORT).
        
    Returns:
        str: A prefixed UUID string like 'cus-xxxxxxxx-xxxx-xxxx-xxxx-xxxxxxxxxxxx'
    """
    return f"{prefix.value}-{uuid4()}"
