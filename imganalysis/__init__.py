"""
imganalysis - Kernel Power K-Means segmentation of grayscale intensity fields.

Este paquete agrupa los pixeles de una imagen en escala de grises usando
Kernel Power K-Means (similitud espacial + intensidad), junto con el
preprocesado previo y el conteo de regiones conexas sobre las etiquetas.
"""

__version__ = "0.1.0"
