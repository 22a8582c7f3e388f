from collector.core.application import create_app
from collector.core.startup import lifespan

app = create_app(lifespan=lifespan)
