"""CLI frontend for datastar-aiohttp.

Commands:
    datastar-aiohttp testserver         Run the SDK conformance test server
    datastar-aiohttp encode elements    Render a patch-elements frame
    datastar-aiohttp encode signals     Render a patch-signals frame
    datastar-aiohttp encode script      Render an execute-script frame

Example:
    $ datastar-aiohttp testserver --port 7331
    $ echo '<div id="a">hi</div>' | datastar-aiohttp encode elements --mode inner
"""

from datastar_aiohttp.frontends.cli.main import main

__all__ = ["main"]
