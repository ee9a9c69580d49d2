"""
# A Python client for BLE devices exposing the Nordic UART service

Find the first nearby device, connect, and use it as a byte stream:

```
import bleuart

uart = bleuart.find_first().result(timeout=30)
uart.connect().result()
uart.write("hello\n")
print(uart.read_all_string())
uart.close()
```

Register an object with `connected`, `disconnected` and `available` methods
via `UART.register` to be told when the link changes or data arrives, or
subscribe to the pypubsub topics `bleuart.connection.established`,
`bleuart.connection.lost` and `bleuart.data.available`.
"""

from bleuart.uart_interface import *  # noqa: F403
from bleuart.uart_interface import __all__  # noqa: F401
