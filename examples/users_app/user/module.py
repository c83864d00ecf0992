from nidus import AppModule

from .controllers import AuthController, SettingsController, UserController


class UserModule(AppModule):
    """
    Mounted under its importer at ``/users``; services come from the importer.

    ``UserController`` goes last so ``/:id`` does not shadow ``/settings``.
    """

    def __init__(self):
        super().__init__(
            path="/users",
            controllers=[AuthController, SettingsController, UserController],
        )
