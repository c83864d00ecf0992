"""
Users example - a small API composed from three modules.

    /api                    main module (services, log middleware, events)
    /api/users              UserModule (users, auth, settings controllers)
    /api/companies          company module (shared instance)

Run it with:

    nidus run examples.users_app.main:create_main_module
"""
