from pathlib import Path

chdir = str(Path(__file__).resolve().parent)
wsgi_app = "wsgi:app"

bind = "__g_address__:__g_port__"
workers = int("__g_workers__")
reload = "__g_reload__" == "True"
