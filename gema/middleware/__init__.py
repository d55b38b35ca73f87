"""Framework-neutral request helpers: correlation IDs, JWT authentication, role checks and admin request logging."""