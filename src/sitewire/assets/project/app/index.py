"""Served for "/"."""

from sitewire import TemplateRenderer


class Home:
    def index(self, template: TemplateRenderer):
        template.set_template("index")
        template.assign("app_name", "__app_name__")
        return template.render_return()


controller = Home
