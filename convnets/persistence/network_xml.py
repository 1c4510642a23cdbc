"""XML description of a network plus its parameter files.

Layout::

    <convolutional_neural_network>
      <settings>
        <task type="classification"/>
        <input width=".." height=".." depth=".."/>
        <output width=".." height=".." depth=".."/>
      </settings>
      <architecture>
        <layer type="convolutional|pooling|fully_connected|dropout|activation">...</layer>
      </architecture>
    </convolutional_neural_network>

Layer types starting with ``D`` are treated as disabled and skipped on load.
Parameter file paths are relative to the XML file's directory.
"""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, Optional

import numpy as np

from ..core.container import Dimensions
from ..core.errors import CNNException
from ..core.types import LayerKind, PoolingOperation, TaskType
from ..layers import (
    ActivationLayer,
    BaseLayer,
    ConvolutionalLayer,
    DropoutLayer,
    FullyConnectedLayer,
    PoolingLayer,
    pooling_layer,
)
from ..training.network import ConvolutionalNeuralNetwork
from . import mapper, parameters
from .errors import CannotCreateFilesOnDisk, CouldNotParseXmlFile, InvalidConvolutionalNeuralNetwork

logger = logging.getLogger(__name__)

ROOT_TAG = "convolutional_neural_network"


@dataclass
class ParsedSettings:
    task_type: TaskType = TaskType.CLASSIFICATION
    input: Dimensions = Dimensions()
    output: Dimensions = Dimensions()


def _attribute(element: ET.Element, name: str) -> str:
    value = element.get(name)
    if value is None:
        raise InvalidConvolutionalNeuralNetwork(f"Missing attribute {name!r} on <{element.tag}>")
    return value


def _int_attribute(element: ET.Element, name: str) -> int:
    raw = _attribute(element, name)
    try:
        return int(raw)
    except ValueError as exc:
        raise InvalidConvolutionalNeuralNetwork(f"Attribute {name!r} on <{element.tag}> is not an integer: {raw!r}") from exc


def _dimensions(element: ET.Element) -> Dimensions:
    return Dimensions(
        _int_attribute(element, "width"),
        _int_attribute(element, "height"),
        _int_attribute(element, "depth"),
    )


def _set_dimensions(element: ET.Element, dims: Dimensions) -> None:
    element.set("width", str(dims.width))
    element.set("height", str(dims.height))
    element.set("depth", str(dims.depth))


def _bool(value: str) -> bool:
    return value == "true"


def _bool_text(value: bool) -> str:
    return "true" if value else "false"


class Persistence:
    """Load networks from, and dump networks to, an XML file and parameter files."""

    def __init__(self, rng: Optional[np.random.Generator] = None) -> None:
        self.rng = rng if rng is not None else np.random.default_rng()
        self._directory = Path(".")
        self._load_weights = True
        self._settings = ParsedSettings()
        self._parsers: Dict[str, Callable[[ET.Element, Dimensions], BaseLayer]] = {
            "convolutional": self._parse_convolutional,
            "pooling": self._parse_pooling,
            "fully_connected": self._parse_fully_connected,
            "dropout": self._parse_dropout,
            "activation": self._parse_activation,
        }
        self._dumpers: Dict[LayerKind, tuple[str, Callable[[ET.Element, BaseLayer, int], None]]] = {
            LayerKind.CONVOLUTIONAL: ("convolutional", self._dump_convolutional),
            LayerKind.MAX_POOLING: ("pooling", self._dump_pooling),
            LayerKind.AVG_POOLING: ("pooling", self._dump_pooling),
            LayerKind.FULLY_CONNECTED: ("fully_connected", self._dump_fully_connected),
            LayerKind.DROPOUT: ("dropout", self._dump_dropout),
            LayerKind.ACTIVATION: ("activation", self._dump_activation),
        }

    # ------------------------------------------------------------------
    # Loading

    def load_network(self, xml_path: str | Path, load_weights: bool = True) -> ConvolutionalNeuralNetwork:
        xml_path = Path(xml_path)
        self._directory = xml_path.parent
        self._load_weights = load_weights
        self._settings = ParsedSettings()

        try:
            root = ET.parse(xml_path).getroot()
        except (OSError, ET.ParseError) as exc:
            raise CouldNotParseXmlFile(f"Could not load or parse input XML file {xml_path}: {exc}") from exc
        if root.tag != ROOT_TAG:
            raise CouldNotParseXmlFile(f'XML content is not valid architecture. Expected "{ROOT_TAG}" node.')
        children = list(root)
        if not children or children[0].tag != "settings":
            raise CouldNotParseXmlFile('XML content is not valid architecture. Expected "settings" node.')
        if len(children) < 2 or children[1].tag != "architecture":
            raise CouldNotParseXmlFile('XML content is not valid architecture. Expected "architecture" node.')

        try:
            self._parse_settings(children[0])
            network = self._parse_architecture(children[1])
        except InvalidConvolutionalNeuralNetwork:
            raise
        except (CNNException, KeyError, ValueError) as exc:
            raise InvalidConvolutionalNeuralNetwork(str(exc)) from exc
        logger.info("Loaded %d layer(s) from %s (weights %s)", len(network), xml_path, "loaded" if load_weights else "random")
        return network

    def _parse_settings(self, element: ET.Element) -> None:
        seen = set()
        for child in element:
            if child.tag == "task":
                self._settings.task_type = mapper.get_task_type(_attribute(child, "type"))
            elif child.tag == "input":
                self._settings.input = _dimensions(child)
            elif child.tag == "output":
                self._settings.output = _dimensions(child)
            else:
                raise InvalidConvolutionalNeuralNetwork(f"Unknown setting <{child.tag}> in XML file.")
            seen.add(child.tag)
        missing = {"task", "input", "output"} - seen
        if missing:
            raise InvalidConvolutionalNeuralNetwork(
                f"Not all required settings were found in XML file, missing: {', '.join(sorted(missing))}"
            )

    def _parse_architecture(self, element: ET.Element) -> ConvolutionalNeuralNetwork:
        network = ConvolutionalNeuralNetwork(self._settings.task_type, rng=self.rng)
        current = self._settings.input
        for child in element:
            if child.tag != "layer":
                raise InvalidConvolutionalNeuralNetwork(f"Unexpected node <{child.tag}> in architecture.")
            layer_type = _attribute(child, "type")
            if layer_type.startswith("D"):
                continue
            parser = self._parsers.get(layer_type)
            if parser is None:
                raise InvalidConvolutionalNeuralNetwork(f"Unexpected layer type {layer_type!r} in architecture.")
            layer = parser(child, current)
            network.add_layer(layer)
            current = layer.output_size
        if not len(network):
            raise InvalidConvolutionalNeuralNetwork("Architecture does not contain any enabled layer.")
        if network.output_size != self._settings.output:
            raise InvalidConvolutionalNeuralNetwork(
                f"Last layer size {network.output_size} is not the same as declared output size "
                f"{self._settings.output}."
            )
        return network

    def _parse_convolutional(self, element: ET.Element, input_size: Dimensions) -> BaseLayer:
        stride = extent = count = padding = 0
        use_bias = False
        filters_path: Optional[Path] = None
        for child in element:
            if child.tag == "bias":
                use_bias = _bool(_attribute(child, "use"))
            elif child.tag == "stride":
                stride = _int_attribute(child, "value")
            elif child.tag == "zero_padding":
                padding = _int_attribute(child, "value")
            elif child.tag == "filters":
                extent = _int_attribute(child, "extent")
                count = _int_attribute(child, "number")
                if child.get("path"):
                    filters_path = self._directory / child.get("path", "")
            else:
                raise InvalidConvolutionalNeuralNetwork(f"Unexpected node <{child.tag}> in convolutional layer definition.")
        if stride <= 0 or extent <= 0 or count <= 0:
            raise InvalidConvolutionalNeuralNetwork("Mandatory settings are missing in convolutional layer definition.")
        layer = ConvolutionalLayer(input_size, stride, count, extent, padding, use_bias, rng=self.rng)
        if filters_path is not None and self._load_weights:
            filters, biases = parameters.parse_filters(filters_path, count, extent, input_size.depth)
            layer.load_filters(filters, biases)
        return layer

    def _parse_pooling(self, element: ET.Element, input_size: Dimensions) -> BaseLayer:
        operation = PoolingOperation.MAX
        stride = extent = 0
        for child in element:
            if child.tag == "operation":
                operation = mapper.get_pooling_operation(_attribute(child, "type"))
            elif child.tag == "stride":
                stride = _int_attribute(child, "value")
            elif child.tag == "extent":
                extent = _int_attribute(child, "value")
            else:
                raise InvalidConvolutionalNeuralNetwork(f"Unexpected node <{child.tag}> in pooling layer definition.")
        if stride <= 0 or extent <= 0:
            raise InvalidConvolutionalNeuralNetwork("Stride and extent size cannot be zero or lower.")
        return pooling_layer(operation, input_size, extent, stride)

    def _parse_fully_connected(self, element: ET.Element, input_size: Dimensions) -> BaseLayer:
        neurons = 0
        use_bias = True
        weights_path: Optional[Path] = None
        for child in element:
            if child.tag == "bias":
                use_bias = _bool(_attribute(child, "use"))
            elif child.tag == "weights":
                if child.get("path"):
                    weights_path = self._directory / child.get("path", "")
            elif child.tag == "output_layer":
                neurons = _int_attribute(child, "size")
            else:
                raise InvalidConvolutionalNeuralNetwork(
                    f"Unexpected node <{child.tag}> in fully connected layer definition."
                )
        if neurons <= 0:
            raise InvalidConvolutionalNeuralNetwork("Output size of fully connected layer not set or set to zero.")
        layer = FullyConnectedLayer(input_size, neurons, use_bias, rng=self.rng)
        if weights_path is not None and self._load_weights:
            layer.set_weights(parameters.parse_weights(weights_path, input_size.size, neurons))
        return layer

    def _parse_dropout(self, element: ET.Element, input_size: Dimensions) -> BaseLayer:
        probability: Optional[float] = None
        for child in element:
            if child.tag == "probability":
                probability = float(_attribute(child, "value"))
            else:
                raise InvalidConvolutionalNeuralNetwork(f"Unexpected node <{child.tag}> in dropout layer definition.")
        if probability is None:
            raise InvalidConvolutionalNeuralNetwork("Dropout probability not set in dropout layer.")
        return DropoutLayer(input_size, probability, rng=self.rng)

    def _parse_activation(self, element: ET.Element, input_size: Dimensions) -> BaseLayer:
        function = mapper.get_activation_function("sigmoid")
        for child in element:
            if child.tag == "activation":
                function = mapper.get_activation_function(_attribute(child, "type"))
            else:
                raise InvalidConvolutionalNeuralNetwork(f"Unexpected node <{child.tag}> in activation layer definition.")
        return mapper.get_activation_layer(function, input_size)

    # ------------------------------------------------------------------
    # Dumping

    def dump_network(self, network: ConvolutionalNeuralNetwork, xml_path: str | Path) -> None:
        xml_path = Path(xml_path)
        self._directory = xml_path.parent

        root = ET.Element(ROOT_TAG)
        settings = ET.SubElement(root, "settings")
        ET.SubElement(settings, "task", type=mapper.get_task_name(network.task_type))
        _set_dimensions(ET.SubElement(settings, "input"), network.input_size)
        _set_dimensions(ET.SubElement(settings, "output"), network.output_size)

        architecture = ET.SubElement(root, "architecture")
        for index, layer in enumerate(network, start=1):
            entry = self._dumpers.get(layer.kind)
            if entry is None:
                raise InvalidConvolutionalNeuralNetwork(
                    f"Could not dump {type(layer).__name__}; it is not supported by the XML format."
                )
            name, dumper = entry
            element = ET.SubElement(architecture, "layer", type=name)
            dumper(element, layer, index)

        tree = ET.ElementTree(root)
        ET.indent(tree)
        try:
            tree.write(xml_path, encoding="utf-8", xml_declaration=True)
        except OSError as exc:
            raise CannotCreateFilesOnDisk(f"Could not save XML file with architecture to {xml_path}: {exc}") from exc
        logger.info("Dumped %d layer(s) to %s", len(network), xml_path)

    def _dump_convolutional(self, element: ET.Element, layer: BaseLayer, index: int) -> None:
        assert isinstance(layer, ConvolutionalLayer)
        file_name = f"{index}_conv_layer.txt"
        parameters.dump_filters(self._directory / file_name, layer.get_filters(), layer.get_biases())
        ET.SubElement(element, "stride", value=str(layer.stride))
        ET.SubElement(element, "zero_padding", value=str(layer.zero_padding))
        ET.SubElement(
            element,
            "filters",
            path=file_name,
            number=str(layer.filter_count),
            extent=str(layer.extent),
        )
        ET.SubElement(element, "bias", use=_bool_text(layer.uses_bias))

    def _dump_pooling(self, element: ET.Element, layer: BaseLayer, index: int) -> None:
        assert isinstance(layer, PoolingLayer)
        ET.SubElement(element, "operation", type=mapper.get_pooling_name(layer.operation))
        ET.SubElement(element, "stride", value=str(layer.stride))
        ET.SubElement(element, "extent", value=str(layer.extent))

    def _dump_fully_connected(self, element: ET.Element, layer: BaseLayer, index: int) -> None:
        assert isinstance(layer, FullyConnectedLayer)
        file_name = f"{index}_fc_layer.txt"
        parameters.dump_weights(self._directory / file_name, layer.get_weights())
        ET.SubElement(element, "output_layer", size=str(layer.output_size.size))
        ET.SubElement(element, "weights", path=file_name)
        ET.SubElement(element, "bias", use=_bool_text(layer.uses_bias))

    def _dump_dropout(self, element: ET.Element, layer: BaseLayer, index: int) -> None:
        assert isinstance(layer, DropoutLayer)
        ET.SubElement(element, "probability", value=repr(layer.probability))

    def _dump_activation(self, element: ET.Element, layer: BaseLayer, index: int) -> None:
        assert isinstance(layer, ActivationLayer)
        ET.SubElement(element, "activation", type=mapper.get_activation_name(layer.function))


__all__ = ["ParsedSettings", "Persistence", "ROOT_TAG"]
