class PropertyBag(dict):
    """
    A dictionary that creates a nested PropertyBag for every missing key.

    Used to assemble the JSON model dump without checking whether the
    namespace and owner levels already exist:

    >>> model = PropertyBag()
    >>> model["Demo.Controls"]["Widget"]["toolkit"] = "Wpf"
    >>> model
    {'Demo.Controls': {'Widget': {'toolkit': 'Wpf'}}}
    """

    def __missing__(self, key):
        self[key] = PropertyBag()
        return self[key]
