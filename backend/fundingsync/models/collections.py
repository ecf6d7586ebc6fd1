PROJECTS = "projects"
INVESTMENTS = "investments"
USERS = "users"
