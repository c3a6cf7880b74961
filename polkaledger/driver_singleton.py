class Singleton(type):
    _instances = {}

    def __call__(cls, *args, **kwargs):
        if cls not in cls._instances:
            cls._instances[cls] = super(Singleton, cls).__call__(*args, **kwargs)
        return cls._instances[cls]


class Driver(metaclass=Singleton):
    """
    Passes the SQLAlchemy session around. The models and the ledger store fetch it
    from here instead of having it threaded through every rule.
    """

    def add_driver(self, driver):
        self.driver = driver

    def get_driver(self):
        return self.driver
