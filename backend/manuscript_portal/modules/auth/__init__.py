from manuscript_portal.modules.auth.dependencies import (
    get_current_user,
    get_optional_user,
    require_roles,
    get_current_admin,
    get_current_researcher,
)
