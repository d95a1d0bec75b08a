import logging
import sys
from datetime import date

from muhasib.config import ConfigManager
from muhasib.services.location import provider_from_config
from muhasib.tui.app import build_engine, prayer_rows, status_text

logging.basicConfig(level=logging.DEBUG, stream=sys.stderr)

config = ConfigManager().load()
engine = build_engine(config)
engine.subscribe(lambda view: print('published:', view.current_day, 'loading' if view.loading else 'ready', view.error_msg or ''))

print('Resolving location...')
view = engine.start(provider_from_config(config.location)).result()
print('Coordinate:', engine.coordinate)

for step in (None, engine.previous_day, engine.next_day, engine.next_day):
    if step is not None:
        step()
        view = engine.wait()
    print(status_text(view, today=date.today()))
    for row in prayer_rows(view):
        print('   ', *row)

engine.close()
print('Finished')
