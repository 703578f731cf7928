"""HTTP route modules, one APIRouter each."""
